"""Recovery domain API package."""

from recovery.api.routes import router

__all__ = ["router"]
