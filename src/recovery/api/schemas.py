"""Pydantic request/response schemas for the cart recovery API.

These are external contracts (anti-corruption layer). Line items are kept
lenient on purpose: malformed entries reach the normalizer, which drops them
with a warning instead of rejecting the whole cart.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class CartLineItemSchema(BaseModel):
    """One line item exactly as the storefront sent it.

    Values are not coerced here; the normalizer decides per item whether it
    is usable.
    """

    id: Any = None
    product_id: Any = None
    name: Any = None
    price: Any = None  # minor units (cents)
    unit_price: Any = None
    quantity: Any = None

    def to_raw(self) -> dict:
        return {
            "product_id": self.product_id if self.product_id is not None else self.id,
            "name": self.name,
            "unit_price": self.unit_price if self.unit_price is not None else self.price,
            "quantity": self.quantity,
        }


class CartPayloadRequest(BaseModel):
    email: str
    name: str | None = None
    items: list[Any] | None = None  # entries are read with CartLineItemSchema
    action: Literal["track", "update", "recovered"] = "track"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "email": "jane@example.com",
                    "name": "Jane",
                    "items": [{"id": "p1", "name": "Widget", "price": 1000, "quantity": 2}],
                    "action": "track",
                }
            ]
        }
    }


class CartResponse(BaseModel):
    cart: dict


class RecoveryResponse(BaseModel):
    success: bool
    outcome: str
    cart: dict | None = None


class StatsResponse(BaseModel):
    stats: dict


class AbandonedCartsResponse(BaseModel):
    carts: list[dict] = Field(default_factory=list)


class SweepRequest(BaseModel):
    as_of: datetime | None = None  # defaults to now


class SweepResponse(BaseModel):
    abandoned: int
    expired: int


class CleanupRequest(BaseModel):
    older_than_days: int = Field(default=30, ge=0)


class CleanupResponse(BaseModel):
    removed: int
