"""Errors raised by the Recovery domain.

Caller-visible validation problems reuse Protean's ``ValidationError`` so the
API layer can report them the same way as any other domain validation.
"""

from protean.exceptions import ValidationError


class EmptyCartError(ValidationError):
    """No valid line item remained after normalization."""

    def __init__(self, warnings=None):
        self.warnings = list(warnings or [])
        messages = {"items": ["Cart has no valid line items"]}
        if self.warnings:
            messages["items"].extend(str(warning) for warning in self.warnings)
        super().__init__(messages)


class InvariantViolation(Exception):
    """The store holds more than one live session for a customer."""

    def __init__(self, email: str, session_ids: list[str]):
        self.email = email
        self.session_ids = session_ids
        super().__init__(f"{len(session_ids)} live cart sessions found for {email}: {', '.join(session_ids)}")
