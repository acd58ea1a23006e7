"""FastAPI routes for cart recovery — tracking, recovery signals and statistics."""

from datetime import UTC, timedelta

from fastapi import APIRouter, Depends, HTTPException
from protean.exceptions import ValidationError

from recovery.api.schemas import (
    AbandonedCartsResponse,
    CartLineItemSchema,
    CartPayloadRequest,
    CartResponse,
    CleanupRequest,
    CleanupResponse,
    RecoveryResponse,
    StatsResponse,
    SweepRequest,
    SweepResponse,
)
from recovery.registry import get_store
from recovery.session.lifecycle import SessionStatus
from recovery.session.store import SessionStore, UpsertAction

router = APIRouter(prefix="/carts/abandoned", tags=["abandoned-carts"])


@router.post("")
async def receive_cart(body: CartPayloadRequest, store: SessionStore = Depends(get_store)) -> dict:
    """Track or update a cart, or record that it was recovered at checkout."""
    try:
        if body.action == "recovered":
            result = store.mark_recovered(body.email)
            return RecoveryResponse(
                success=result.recovered,
                outcome=result.outcome.value,
                cart=result.session.to_dict() if result.session else None,
            ).model_dump()

        if body.items is None:
            raise HTTPException(status_code=400, detail={"items": ["Items are required"]})

        items = [
            CartLineItemSchema.model_validate(item).to_raw() if isinstance(item, dict) else item for item in body.items
        ]
        session = store.upsert(body.email, body.name, items, UpsertAction(body.action))
        return CartResponse(cart=session.to_dict()).model_dump()
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc


@router.get("", response_model=AbandonedCartsResponse)
async def list_abandoned_carts(store: SessionStore = Depends(get_store)) -> AbandonedCartsResponse:
    return AbandonedCartsResponse(carts=[session.to_dict() for session in store.abandoned()])


@router.get("/stats", response_model=StatsResponse)
async def abandoned_cart_stats(store: SessionStore = Depends(get_store)) -> StatsResponse:
    return StatsResponse(stats=store.stats().to_dict())


@router.get("/{email}", response_model=CartResponse)
async def get_cart(email: str, store: SessionStore = Depends(get_store)) -> CartResponse:
    try:
        session = store.get(email)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc

    if session is None:
        raise HTTPException(status_code=404, detail="No cart tracked for this email")
    return CartResponse(cart=session.to_dict())


@router.post("/sweep", response_model=SweepResponse)
async def sweep_carts(body: SweepRequest | None = None, store: SessionStore = Depends(get_store)) -> SweepResponse:
    """Maintenance endpoint for an external scheduler (cron, K8s CronJob)."""
    as_of = body.as_of if body else None
    if as_of is not None and as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=UTC)

    try:
        plan = store.sweep(as_of)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc

    return SweepResponse(
        abandoned=sum(1 for transition in plan if transition.target == SessionStatus.ABANDONED),
        expired=sum(1 for transition in plan if transition.target == SessionStatus.EXPIRED),
    )


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_carts(
    body: CleanupRequest | None = None, store: SessionStore = Depends(get_store)
) -> CleanupResponse:
    """Delete Recovered and Expired sessions closed longer ago than the retention window."""
    body = body or CleanupRequest()
    return CleanupResponse(removed=store.cleanup_old_sessions(timedelta(days=body.older_than_days)))
