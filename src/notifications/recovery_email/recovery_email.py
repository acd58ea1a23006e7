"""RecoveryEmail aggregate — one recovery email per abandoned cart session.

The email is scheduled when a cart is abandoned, kept in step with the cart
while it waits, and closed once it has been sent, given up on, or cancelled
because the cart was recovered or expired.

State Machine:
    PENDING → SENT
    PENDING → FAILED     (after max_attempts failed deliveries)
    PENDING → CANCELLED
"""

import json
from datetime import datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from notifications.domain import notifications


class DeliveryStatus(Enum):
    PENDING = "Pending"
    SENT = "Sent"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


_VALID_TRANSITIONS = {
    DeliveryStatus.PENDING: {
        DeliveryStatus.SENT,
        DeliveryStatus.FAILED,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.SENT: set(),  # Terminal
    DeliveryStatus.FAILED: set(),  # Terminal
    DeliveryStatus.CANCELLED: set(),  # Terminal
}


@notifications.aggregate
class RecoveryEmail:
    """The recovery email for one abandoned cart session."""

    # Source cart session
    session_id: Identifier(required=True)

    # Recipient
    email: String(required=True, max_length=254)
    customer_name: String(max_length=255)

    # Cart contents at the time of the last refresh
    items: Text()  # JSON
    total_value: Integer(default=0)

    # Status
    status: String(choices=DeliveryStatus, default=DeliveryStatus.PENDING.value)
    send_at: DateTime(required=True)

    # Delivery tracking
    attempts: Integer(default=0)
    max_attempts: Integer(default=3)
    message_id: String(max_length=200)
    failure_reason: String(max_length=500)

    # Timestamps
    created_at: DateTime()
    updated_at: DateTime()
    closed_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def schedule(cls, session_id, email, customer_name, items, total_value, send_at, scheduled_at, max_attempts=3):
        """Create a PENDING email for ``session_id`` to go out at ``send_at``."""
        return cls(
            session_id=session_id,
            email=email,
            customer_name=customer_name,
            items=items,
            total_value=total_value or 0,
            status=DeliveryStatus.PENDING.value,
            send_at=send_at,
            attempts=0,
            max_attempts=max_attempts,
            created_at=scheduled_at,
            updated_at=scheduled_at,
        )

    @property
    def is_pending(self) -> bool:
        return self.status == DeliveryStatus.PENDING.value

    @property
    def line_items(self) -> list:
        return json.loads(self.items) if self.items else []

    def is_due(self, as_of: datetime) -> bool:
        return self.is_pending and self.send_at <= as_of

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = DeliveryStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def refresh(self, customer_name, items, total_value, refreshed_at):
        """Replace the cart contents the email will show."""
        if not self.is_pending:
            raise ValidationError({"status": [f"Cannot refresh a {self.status} recovery email"]})

        if customer_name:
            self.customer_name = customer_name
        self.items = items
        self.total_value = total_value or 0
        self.updated_at = refreshed_at

    def mark_sent(self, message_id, sent_at):
        self._assert_can_transition(DeliveryStatus.SENT)

        self.status = DeliveryStatus.SENT.value
        self.attempts = self.attempts + 1
        self.message_id = message_id
        self.failure_reason = None
        self.updated_at = sent_at
        self.closed_at = sent_at

    def record_failure(self, reason, failed_at):
        """Count a failed delivery. The email stays PENDING until it runs out of attempts."""
        if not self.is_pending:
            raise ValidationError({"status": [f"Cannot record a failure on a {self.status} recovery email"]})

        self.attempts = self.attempts + 1
        self.failure_reason = reason
        self.updated_at = failed_at

        if self.attempts >= self.max_attempts:
            self._assert_can_transition(DeliveryStatus.FAILED)
            self.status = DeliveryStatus.FAILED.value
            self.closed_at = failed_at

    def cancel(self, reason, cancelled_at):
        """Cancel a pending email."""
        self._assert_can_transition(DeliveryStatus.CANCELLED)

        self.status = DeliveryStatus.CANCELLED.value
        self.failure_reason = reason
        self.updated_at = cancelled_at
        self.closed_at = cancelled_at
