"""Messaging channels."""

from clario.channels.base import MessageSender
from clario.channels.whatsapp import (
    BridgeWhatsAppSender,
    ConsoleWhatsAppSender,
    DeliveryError,
    WhatsAppInbound,
    build_sender,
)

__all__ = [
    "BridgeWhatsAppSender",
    "ConsoleWhatsAppSender",
    "DeliveryError",
    "MessageSender",
    "WhatsAppInbound",
    "build_sender",
]
