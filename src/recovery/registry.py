"""Session store registry — the process-wide store used by the HTTP layer.

The store is built lazily from the environment (storage adapter, policy) and
a system clock. Tests and embedding applications install their own with
``set_store``.
"""

from recovery.config import RecoveryPolicy
from recovery.session.store import SessionStore
from recovery.storage import build_storage

_store_instance: SessionStore | None = None


def get_store() -> SessionStore:
    """Return the configured session store (singleton)."""
    global _store_instance
    if _store_instance is None:
        _store_instance = SessionStore(
            storage=build_storage(),
            policy=RecoveryPolicy.from_env(),
        )
    return _store_instance


def set_store(store: SessionStore) -> None:
    global _store_instance
    _store_instance = store


def reset_store() -> None:
    """Reset the store singleton (useful for testing)."""
    global _store_instance
    _store_instance = None
