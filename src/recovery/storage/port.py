"""Session storage port — abstract interface for persisting cart sessions.

The session store programs against this port; adapters decide where the
aggregates live. Every adapter must hand back sessions that the caller may
mutate and save again.
"""

from abc import ABC, abstractmethod


class SessionStorage(ABC):
    """Abstract interface for cart session storage adapters."""

    @abstractmethod
    def save(self, session) -> None:
        """Insert or replace a session, keyed by its id."""
        ...

    @abstractmethod
    def get(self, session_id: str):
        """Return the session with ``session_id``, or None."""
        ...

    @abstractmethod
    def for_email(self, email: str) -> list:
        """Return every retained session (live and terminal) for ``email``."""
        ...

    @abstractmethod
    def all(self) -> list:
        """Return every retained session."""
        ...

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove a session. Unknown ids are ignored."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every session."""
        ...
