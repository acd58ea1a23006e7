"""Session storage adapters — pluggable persistence for cart sessions.

Persists through the recovery domain's Protean repository by default, which
needs an active domain context. Set CART_SESSION_STORAGE=memory for a plain
in-process dict.
"""

import os

from recovery.storage.port import SessionStorage


def build_storage(adapter: str | None = None) -> SessionStorage:
    """Return a new storage adapter.

    Args:
        adapter: "memory" or "repository"; defaults to CART_SESSION_STORAGE.
    """
    adapter = (adapter or os.environ.get("CART_SESSION_STORAGE", "repository")).lower()
    if adapter == "memory":
        from recovery.storage.memory import InMemorySessionStorage

        return InMemorySessionStorage()
    elif adapter == "repository":
        from recovery.storage.repository import RepositorySessionStorage

        return RepositorySessionStorage()
    else:
        raise ValueError(f"Unknown session storage adapter: {adapter}")
