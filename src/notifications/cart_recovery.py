"""Cart recovery emails — reacts to cart session events from the Recovery domain.

``CartRecoveryMailer`` subscribes to the session store's event emitter and
turns each cart session event into a Notifications command:

    CartAbandoned            → ScheduleCartRecovery (one hour later by default)
    CartUpdated              → RefreshCartRecovery
    CartRecovered/Expired    → CancelCartRecovery

The listeners run inside whatever domain context the store runs in, so every
command is processed inside the Notifications domain context. Delivery
problems stay here: they are logged and recorded on the RecoveryEmail, never
raised back to the cart session store.
"""

import os
from datetime import datetime, timedelta

import structlog

from notifications.domain import notifications
from notifications.recovery_email.dispatch import DispatchRecoveryEmails, recovery_url
from notifications.recovery_email.helpers import email_for_session, emails_with_status
from notifications.recovery_email.pruning import PruneRecoveryEmails
from notifications.recovery_email.recovery_email import DeliveryStatus, RecoveryEmail
from notifications.recovery_email.scheduling import (
    CancelCartRecovery,
    RefreshCartRecovery,
    ScheduleCartRecovery,
)
from recovery.session.events import CartAbandoned, CartExpired, CartRecovered, CartUpdated

logger = structlog.get_logger(__name__)


class CartRecoveryMailer:
    def __init__(
        self,
        delay: timedelta | None = None,
        site_url: str | None = None,
        max_attempts: int = 3,
    ):
        if delay is None:
            delay = timedelta(minutes=float(os.environ.get("CART_RECOVERY_EMAIL_DELAY_MINUTES", 60)))
        self.delay = delay
        self.site_url = (site_url or os.environ.get("SITE_URL", "https://shop.example.com")).rstrip("/")
        self.max_attempts = max_attempts

    def subscribe(self, emitter) -> None:
        """Register with a cart session event emitter."""
        emitter.on_abandoned(self.on_cart_abandoned)
        emitter.on_recovered(self.on_cart_recovered)
        emitter.subscribe(CartUpdated, self.on_cart_updated)
        emitter.subscribe(CartExpired, self.on_cart_expired)

    def recovery_url(self, session_id: str) -> str:
        return recovery_url(self.site_url, session_id)

    def _process(self, command):
        with notifications.domain_context():
            return notifications.process(command, asynchronous=False)

    # -------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------
    def on_cart_abandoned(self, event: CartAbandoned) -> None:
        self._process(
            ScheduleCartRecovery(
                session_id=str(event.session_id),
                email=event.email,
                customer_name=event.display_name or "",
                items=event.items,
                total_value=event.total_value or 0,
                send_at=event.abandoned_at + self.delay,
                scheduled_at=event.abandoned_at,
                max_attempts=self.max_attempts,
            )
        )

    def on_cart_updated(self, event: CartUpdated) -> None:
        self._process(
            RefreshCartRecovery(
                session_id=str(event.session_id),
                items=event.items,
                total_value=event.total_value or 0,
                refreshed_at=event.updated_at,
            )
        )

    def on_cart_recovered(self, event: CartRecovered) -> None:
        self._process(
            CancelCartRecovery(session_id=str(event.session_id), reason="recovered", cancelled_at=event.recovered_at)
        )

    def on_cart_expired(self, event: CartExpired) -> None:
        self._process(
            CancelCartRecovery(session_id=str(event.session_id), reason="expired", cancelled_at=event.expired_at)
        )

    # -------------------------------------------------------------------
    # Dispatch and housekeeping
    # -------------------------------------------------------------------
    def pending(self) -> list[RecoveryEmail]:
        with notifications.domain_context():
            return emails_with_status(DeliveryStatus.PENDING.value)

    def get(self, session_id: str) -> RecoveryEmail | None:
        with notifications.domain_context():
            return email_for_session(session_id)

    def dispatch_due(self, as_of: datetime) -> int:
        """Send every pending email due at ``as_of``. Returns the number sent."""
        return self._process(DispatchRecoveryEmails(as_of=as_of, site_url=self.site_url))

    def prune(self, older_than: timedelta, now: datetime) -> int:
        """Delete finished emails closed more than ``older_than`` before ``now``."""
        return self._process(PruneRecoveryEmails(cutoff=now - older_than))
