"""Email channel registry — pluggable dispatch for recovery emails.

Uses the fake channel by default; a real provider adapter is selected via
the EMAIL_ADAPTER environment variable in production.
"""

import os

from notifications.channel.port import EmailChannel

_email_channel: EmailChannel | None = None


def get_email_channel() -> EmailChannel:
    """Return the configured email channel (singleton)."""
    global _email_channel
    if _email_channel is None:
        adapter = os.environ.get("EMAIL_ADAPTER", "fake")
        if adapter == "fake":
            from notifications.channel.fake import FakeEmailChannel

            _email_channel = FakeEmailChannel()
        else:
            raise ValueError(f"Unknown email adapter: {adapter}")
    return _email_channel


def reset_email_channel() -> None:
    """Reset the email channel singleton (useful for testing)."""
    global _email_channel
    _email_channel = None
