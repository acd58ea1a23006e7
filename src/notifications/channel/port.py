"""Email channel port — the contract recovery email providers implement.

Adapters are swapped through ``EMAIL_ADAPTER`` (fake in development and
tests) without touching the mailer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OutboundEmail:
    """A rendered recovery email, ready to hand to a provider."""

    session_id: str
    to: str
    subject: str
    body: str
    html_body: str | None = None
    reply_to: str | None = None


@dataclass(frozen=True)
class DeliveryReceipt:
    """What the provider said about one delivery attempt."""

    delivered: bool
    message_id: str | None = None
    failure_reason: str | None = None


class EmailChannel(ABC):
    @abstractmethod
    def deliver(self, message: OutboundEmail) -> DeliveryReceipt:
        """Hand ``message`` to the provider.

        Provider rejections come back as an undelivered receipt; transport
        errors may raise.
        """
        ...
