"""Base interface for outbound message delivery."""

from abc import ABC, abstractmethod


class MessageSender(ABC):
    """
    Abstract outbound sender.

    Implementations raise on delivery failure so callers can retry later.
    """

    name: str = "base"

    @abstractmethod
    async def send(self, phone_number: str, text: str) -> None:
        """
        Deliver one text message.

        Args:
            phone_number: Recipient phone number.
            text: Message body.
        """
        pass
