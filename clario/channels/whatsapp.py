"""WhatsApp delivery through the Node.js bridge, plus inbound text handling."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from loguru import logger

from clario.channels.base import MessageSender
from clario.config.schema import WhatsAppConfig
from clario.utils.helpers import mask_phone

if TYPE_CHECKING:
    from clario.agent.api import Assistant

JID_SUFFIX = "@s.whatsapp.net"

NO_PHONE_REPLY = "Sorry, I couldn't identify your phone number. Please try again."
NON_TEXT_REPLY = "Sorry, I can only process text messages at the moment."
PROCESSING_ERROR_REPLY = "Sorry, something went wrong while processing your request. Please try again later."


class DeliveryError(RuntimeError):
    """Outbound message could not be delivered."""


def format_jid(phone_number: str) -> str:
    """Append the WhatsApp JID suffix unless already present."""
    normalized = (phone_number or "").strip()
    if not normalized:
        raise ValueError("phone_number must not be blank")
    if normalized.endswith(JID_SUFFIX):
        return normalized
    return normalized + JID_SUFFIX


class BridgeWhatsAppSender(MessageSender):
    """POSTs {to, text} to the bridge's /send endpoint."""

    name = "bridge"

    def __init__(
        self,
        bridge_url: str = "http://localhost:3000",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bridge_url = (bridge_url or "http://localhost:3000").strip().rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send(self, phone_number: str, text: str) -> None:
        to = format_jid(phone_number)
        try:
            async with httpx.AsyncClient(
                base_url=self.bridge_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/send", json={"to": to, "text": text})
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Bridge send failed for {mask_phone(phone_number)}: {e}")
            raise DeliveryError(f"WhatsApp bridge send failed: {e}") from e
        logger.debug(f"Sent WhatsApp message to {mask_phone(phone_number)}")


class ConsoleWhatsAppSender(MessageSender):
    """Logs outbound messages instead of sending them."""

    name = "console"

    async def send(self, phone_number: str, text: str) -> None:
        logger.info(f"[WhatsApp outbound] To {mask_phone(phone_number)}: {text}")


def build_sender(config: WhatsAppConfig) -> MessageSender:
    outbound = (config.outbound or "").strip().lower()
    if outbound == "bridge":
        return BridgeWhatsAppSender(config.bridge_url, timeout=config.timeout_seconds)
    if outbound not in {"", "console"}:
        logger.warning(f"Unknown WhatsApp outbound '{config.outbound}', using console")
    return ConsoleWhatsAppSender()


class WhatsAppInbound:
    """
    Maps an inbound WhatsApp text to a registered user and runs the assistant.

    Always returns a reply string so the bridge has something to send back.
    """

    def __init__(self, assistant: Assistant):
        self.assistant = assistant

    async def handle_text(self, phone_number: str | None, text: str | None) -> str:
        if not (phone_number or "").strip():
            logger.warning("Inbound message without a phone number")
            return NO_PHONE_REPLY
        if not (text or "").strip():
            logger.debug(f"Non-text message from {mask_phone(phone_number)}")
            return NON_TEXT_REPLY

        user = self.assistant.users.find_by_phone(phone_number)
        if user is None:
            logger.warning(f"No user found for phone number {mask_phone(phone_number)}")
            return (
                f"Sorry, your phone number ({phone_number}) is not registered with Clario. "
                "Please sign up first or contact support."
            )

        self.assistant.profiles.ensure_default(user.id)
        try:
            return await self.assistant.ask(text, user_id=user.id)
        except Exception as e:
            logger.error(f"Error processing message for user {user.id}: {e}")
            return PROCESSING_ERROR_REPLY
