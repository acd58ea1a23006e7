"""CartSession aggregate (CQRS) — one tracked cart per customer email.

A session is opened the first time a customer's cart is tracked, revised
while the customer keeps shopping, aged into Abandoned and Expired by the
sweep, and closed as Recovered when checkout completes. Terminal sessions are
never reopened: tracking the same email again opens a new session.

Readers outside the store get a ``CartSessionSnapshot``, an immutable copy.
"""

from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, String, Text

from recovery.domain import recovery
from recovery.session.events import (
    CartAbandoned,
    CartExpired,
    CartRecovered,
    CartTracked,
    CartUpdated,
)
from recovery.session.items import NormalizedCart, deserialize_items
from recovery.session.lifecycle import SessionStatus, can_transition, is_live, is_terminal

DEFAULT_DISPLAY_NAME = "Customer"
MAX_EMAIL_LENGTH = 254
MAX_DISPLAY_NAME_LENGTH = 255


def canonical_email(email) -> str:
    """Trim and lower-case an email so it can key a session."""
    if not isinstance(email, str) or not email.strip():
        raise ValidationError({"email": ["Email is required"]})

    value = email.strip().lower()
    local, _, domain = value.partition("@")
    if not local or not domain:
        raise ValidationError({"email": [f"'{email}' is not a valid email address"]})
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValidationError({"email": [f"Email is longer than {MAX_EMAIL_LENGTH} characters"]})
    return value


def _display_name(value) -> str | None:
    """Trimmed display name, cut to the stored length. None when blank."""
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()[:MAX_DISPLAY_NAME_LENGTH]


@dataclass(frozen=True)
class CartSessionSnapshot:
    """Point-in-time copy of a CartSession."""

    id: str
    email: str
    display_name: str
    items: tuple
    content_hash: str
    status: str
    recovered_from: str | None
    created_at: datetime
    last_updated_at: datetime
    abandoned_at: datetime | None = None
    recovered_at: datetime | None = None
    expired_at: datetime | None = None

    @property
    def total_value(self) -> int:
        return sum(item.unit_price * item.quantity for item in self.items)

    @property
    def is_live(self) -> bool:
        return is_live(self.status)

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def to_dict(self) -> dict:
        def _iso(value):
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name or "",
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                }
                for item in self.items
            ],
            "total_value": self.total_value,
            "status": self.status,
            "recovered_from": self.recovered_from,
            "created_at": _iso(self.created_at),
            "last_updated_at": _iso(self.last_updated_at),
            "abandoned_at": _iso(self.abandoned_at),
            "recovered_at": _iso(self.recovered_at),
            "expired_at": _iso(self.expired_at),
        }


@recovery.aggregate
class CartSession:
    email = String(required=True, max_length=MAX_EMAIL_LENGTH)
    display_name = String(max_length=MAX_DISPLAY_NAME_LENGTH, default=DEFAULT_DISPLAY_NAME)
    items = Text()  # JSON: canonical list of {product_id, name, unit_price, quantity}
    content_hash = String(max_length=64)
    status = String(choices=SessionStatus, default=SessionStatus.ACTIVE.value)
    recovered_from = String(max_length=20)
    created_at = DateTime()
    last_updated_at = DateTime()
    abandoned_at = DateTime()
    recovered_at = DateTime()
    expired_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, email: str, display_name: str | None, cart: NormalizedCart, now: datetime):
        session = cls(
            email=canonical_email(email),
            display_name=_display_name(display_name) or DEFAULT_DISPLAY_NAME,
            items=cart.to_json(),
            content_hash=cart.content_hash,
            status=SessionStatus.ACTIVE.value,
            created_at=now,
            last_updated_at=now,
        )

        session.raise_(
            CartTracked(
                session_id=str(session.id),
                email=session.email,
                display_name=session.display_name,
                items=session.items,
                total_value=cart.total_value,
                tracked_at=now,
            )
        )
        return session

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def line_items(self) -> tuple:
        return deserialize_items(self.items)

    @property
    def total_value(self) -> int:
        return sum(item.unit_price * item.quantity for item in self.line_items)

    @property
    def is_live(self) -> bool:
        return is_live(self.status)

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def pull_events(self) -> list:
        """Hand over the events raised since the last call and forget them."""
        events = list(self._events)
        self._events.clear()
        return events

    def snapshot(self) -> CartSessionSnapshot:
        return CartSessionSnapshot(
            id=str(self.id),
            email=self.email,
            display_name=self.display_name,
            items=self.line_items,
            content_hash=self.content_hash,
            status=self.status,
            recovered_from=self.recovered_from,
            created_at=self.created_at,
            last_updated_at=self.last_updated_at,
            abandoned_at=self.abandoned_at,
            recovered_at=self.recovered_at,
            expired_at=self.expired_at,
        )

    # -------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------
    def revise(self, cart: NormalizedCart, now: datetime, display_name: str | None = None) -> bool:
        """Replace the cart contents. Returns False when the contents are unchanged.

        An unchanged payload leaves ``last_updated_at`` alone so a customer
        re-posting the same cart does not postpone abandonment.
        """
        if not self.is_live:
            raise ValidationError({"status": [f"Cannot revise a {self.status} cart session"]})

        display_name = _display_name(display_name)
        if display_name:
            self.display_name = display_name

        if cart.content_hash == self.content_hash:
            return False

        previous_total_value = self.total_value
        self.items = cart.to_json()
        self.content_hash = cart.content_hash
        self.last_updated_at = now

        self.raise_(
            CartUpdated(
                session_id=str(self.id),
                email=self.email,
                items=self.items,
                total_value=cart.total_value,
                previous_total_value=previous_total_value,
                updated_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def _guard(self, target: SessionStatus):
        if not can_transition(self.status, target):
            raise ValidationError({"status": [f"Cannot move a {self.status} cart session to {target.value}"]})

    def abandon(self, now: datetime):
        """Mark the session abandoned after it sat idle past the threshold."""
        self._guard(SessionStatus.ABANDONED)

        self.status = SessionStatus.ABANDONED.value
        self.abandoned_at = now

        self.raise_(
            CartAbandoned(
                session_id=str(self.id),
                email=self.email,
                display_name=self.display_name,
                items=self.items,
                total_value=self.total_value,
                last_updated_at=self.last_updated_at,
                abandoned_at=now,
            )
        )

    def recover(self, now: datetime):
        """Close the session as recovered (checkout completed)."""
        self._guard(SessionStatus.RECOVERED)

        self.recovered_from = self.status
        self.status = SessionStatus.RECOVERED.value
        self.recovered_at = now

        self.raise_(
            CartRecovered(
                session_id=str(self.id),
                email=self.email,
                total_value=self.total_value,
                recovered_from=self.recovered_from,
                recovered_at=now,
            )
        )

    def expire(self, now: datetime, reason: str = "idle"):
        """Close the session without a recovery."""
        self._guard(SessionStatus.EXPIRED)

        self.status = SessionStatus.EXPIRED.value
        self.expired_at = now

        self.raise_(
            CartExpired(
                session_id=str(self.id),
                email=self.email,
                total_value=self.total_value,
                reason=reason,
                expired_at=now,
            )
        )
