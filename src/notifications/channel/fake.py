"""Configurable fake email channel for development and testing.

Keeps every delivered message in ``outbox``. It can be told to reject
deliveries, either from now on or only for the next few attempts, to
exercise the mailer's retry path.
"""

from uuid import uuid4

from notifications.channel.port import DeliveryReceipt, EmailChannel, OutboundEmail


class FakeEmailChannel(EmailChannel):
    def __init__(self) -> None:
        self.outbox: list[OutboundEmail] = []
        self.attempts: int = 0
        self.should_succeed: bool = True
        self.failure_reason: str = "Mailbox unavailable"
        self._failures_left: int | None = None

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Mailbox unavailable",
        fail_times: int | None = None,
    ) -> None:
        """Configure delivery behavior. ``fail_times`` limits how many attempts fail."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self._failures_left = fail_times

    def deliver(self, message: OutboundEmail) -> DeliveryReceipt:
        self.attempts += 1

        failing = not self.should_succeed
        if failing and self._failures_left is not None:
            if self._failures_left <= 0:
                failing = False
            else:
                self._failures_left -= 1

        if failing:
            return DeliveryReceipt(delivered=False, failure_reason=self.failure_reason)

        self.outbox.append(message)
        return DeliveryReceipt(delivered=True, message_id=f"fake_msg_{uuid4().hex[:12]}")

    def sent_to(self, address: str) -> list[OutboundEmail]:
        return [message for message in self.outbox if message.to == address]

    def reset(self) -> None:
        self.outbox.clear()
        self.attempts = 0
        self.should_succeed = True
        self.failure_reason = "Mailbox unavailable"
        self._failures_left = None
