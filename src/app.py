"""Cart recovery FastAPI application.

Web server for the cart recovery API. Requests under /carts run in the
recovery domain context and requests under /notifications in the
notifications one. Recovery emails are wired to the session store's event
emitter at import time.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay and the log renderer.

from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from notifications.cart_recovery import CartRecoveryMailer
from notifications.domain import notifications
from recovery.api import router as recovery_router
from recovery.domain import recovery
from recovery.registry import get_store
from recovery.utils.logging import add_context, clear_context

recovery.init()
notifications.init()

_ROUTE_DOMAIN_MAP = {
    "/carts": recovery,
    "/notifications": notifications,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
recovery_mailer = CartRecoveryMailer()
recovery_mailer.subscribe(get_store().emitter)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Cart Recovery API",
    description="Cart session tracking, abandonment sweeps and recovery statistics",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the domain context for the path and bind request details to the log context."""
    domain = _resolve_domain(request.url.path)
    if domain is None:
        # Health check and docs run outside any domain
        return await call_next(request)

    add_context(method=request.method, path=request.url.path)
    try:
        with domain.domain_context():
            return await call_next(request)
    finally:
        clear_context()


app.include_router(recovery_router)


@app.post("/notifications/cart-recovery/dispatch")
async def dispatch_recovery_emails():
    """Send recovery emails that are due and prune old finished ones. Triggered by an external scheduler."""
    now = get_store().clock.now()
    sent = recovery_mailer.dispatch_due(now)
    pruned = recovery_mailer.prune(timedelta(days=30), now)
    return JSONResponse(content={"sent": sent, "pruned": pruned, "pending": len(recovery_mailer.pending())})


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "recovery": {"name": recovery.name},
                "notifications": {"name": notifications.name},
            },
        }
    )
