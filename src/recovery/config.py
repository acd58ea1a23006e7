"""Recovery policy — thresholds and retention for cart sessions.

Values come from the environment so that deployments can tune them without
code changes:

    CART_ABANDON_AFTER_MINUTES  idle time before an Active cart is Abandoned (60)
    CART_EXPIRE_AFTER_DAYS      idle time before an Abandoned cart Expires (30)
    CART_EXPIRED_RETENTION      "keep" expired sessions for stats, or "drop" them
    PROTEAN_ENV                 "production" repairs store invariants instead of failing
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

DEFAULT_ABANDON_AFTER = timedelta(hours=1)
DEFAULT_EXPIRE_AFTER = timedelta(days=30)


class RetentionPolicy(Enum):
    KEEP = "keep"
    DROP = "drop"


@dataclass(frozen=True)
class RecoveryPolicy:
    """Configuration surface of the session store and sweep."""

    abandon_after: timedelta = DEFAULT_ABANDON_AFTER
    expire_after: timedelta = DEFAULT_EXPIRE_AFTER
    retention: RetentionPolicy = RetentionPolicy.KEEP
    sweep_on_read: bool = True
    strict_invariants: bool = True

    def __post_init__(self):
        if self.abandon_after <= timedelta(0):
            raise ValueError("abandon_after must be positive")
        if self.expire_after < self.abandon_after:
            raise ValueError("expire_after must not be shorter than abandon_after")

    @classmethod
    def from_env(cls) -> "RecoveryPolicy":
        abandon_minutes = float(os.environ.get("CART_ABANDON_AFTER_MINUTES", 60))
        expire_days = float(os.environ.get("CART_EXPIRE_AFTER_DAYS", 30))
        retention = RetentionPolicy(os.environ.get("CART_EXPIRED_RETENTION", RetentionPolicy.KEEP.value).lower())
        production = os.environ.get("PROTEAN_ENV", "").lower() == "production"

        return cls(
            abandon_after=timedelta(minutes=abandon_minutes),
            expire_after=timedelta(days=expire_days),
            retention=retention,
            strict_invariants=not production,
        )
