"""Cart line items — validation, merging and fingerprinting of raw cart payloads.

Front-ends post carts as they see them: the same product can appear twice
(two "add to cart" clicks), entries arrive in arbitrary order and now and then
carry garbage. ``normalize`` turns such a payload into a canonical cart:

* invalid entries are dropped with a ``LineItemWarning``
* duplicate product ids are merged by summing quantities (later price wins)
* items are sorted by product id
* a content hash over ``(product_id, quantity, unit_price)`` detects no-op updates

Prices are integers in minor currency units (cents).
"""

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass

import structlog
from protean.fields import Integer, String

from recovery.domain import recovery
from recovery.exceptions import EmptyCartError

logger = structlog.get_logger(__name__)

MAX_TEXT_LENGTH = 255


@recovery.value_object(part_of="CartSession")
class LineItem:
    """A single product entry in a cart, captured at tracking time."""

    product_id = String(required=True, max_length=MAX_TEXT_LENGTH)
    name = String(max_length=MAX_TEXT_LENGTH, default="")
    unit_price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1)

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class LineItemWarning:
    """A data-quality observation made while normalizing a payload."""

    index: int
    product_id: str | None
    reason: str

    def __str__(self) -> str:
        if self.product_id:
            return f"item {self.index} ({self.product_id}): {self.reason}"
        return f"item {self.index}: {self.reason}"


@dataclass(frozen=True)
class NormalizedCart:
    items: tuple
    content_hash: str
    total_value: int
    warnings: tuple = ()

    def to_json(self) -> str:
        return serialize_items(self.items)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validation_error(raw) -> str | None:
    """Return the reason a raw item is unusable, or None if it is valid."""
    if not isinstance(raw, Mapping):
        return "line item is not an object"

    product_id = raw.get("product_id")
    if _is_int(product_id):
        product_id = str(product_id)
    if not isinstance(product_id, str) or not product_id.strip():
        return "product_id is blank"
    if len(product_id.strip()) > MAX_TEXT_LENGTH:
        return f"product_id is longer than {MAX_TEXT_LENGTH} characters"

    name = raw.get("name")
    if name is not None and not isinstance(name, str):
        return "name is not a string"
    if name is not None and len(name.strip()) > MAX_TEXT_LENGTH:
        return f"name is longer than {MAX_TEXT_LENGTH} characters"

    unit_price = raw.get("unit_price")
    if not _is_int(unit_price):
        return "unit_price must be an integer amount in minor units"
    if unit_price < 0:
        return "unit_price is negative"

    quantity = raw.get("quantity")
    if not _is_int(quantity):
        return "quantity must be an integer"
    if quantity < 1:
        return "quantity must be at least 1"

    return None


def fingerprint(items) -> str:
    """Deterministic content hash of canonical items. Not a security hash."""
    canonical = [[item.product_id, item.quantity, item.unit_price] for item in items]
    payload = json.dumps(canonical, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def serialize_items(items) -> str:
    return json.dumps(
        [
            {
                "product_id": item.product_id,
                "name": item.name or "",
                "unit_price": item.unit_price,
                "quantity": item.quantity,
            }
            for item in items
        ]
    )


def deserialize_items(payload: str | None) -> tuple:
    if not payload:
        return ()
    return tuple(LineItem(**entry) for entry in json.loads(payload))


def normalize(raw_items) -> NormalizedCart:
    """Validate, merge and order a raw cart payload.

    Raises:
        EmptyCartError: when no valid line item remains.
    """
    warnings: list[LineItemWarning] = []
    merged: dict[str, dict] = {}

    for index, raw in enumerate(raw_items or []):
        reason = _validation_error(raw)
        if reason:
            product_id = raw.get("product_id") if isinstance(raw, Mapping) else None
            warning = LineItemWarning(index=index, product_id=str(product_id) if product_id else None, reason=reason)
            warnings.append(warning)
            logger.warning("Dropped invalid line item", index=index, product_id=warning.product_id, reason=reason)
            continue

        product_id = str(raw["product_id"]).strip()
        name = (raw.get("name") or "").strip()
        unit_price = raw["unit_price"]
        quantity = raw["quantity"]

        existing = merged.get(product_id)
        if existing is None:
            merged[product_id] = {
                "product_id": product_id,
                "name": name,
                "unit_price": unit_price,
                "quantity": quantity,
            }
            continue

        if existing["unit_price"] != unit_price:
            warnings.append(
                LineItemWarning(
                    index=index,
                    product_id=product_id,
                    reason=f"conflicting unit_price {existing['unit_price']} replaced by {unit_price}",
                )
            )
            logger.warning(
                "Conflicting unit price for duplicate line item",
                product_id=product_id,
                previous_unit_price=existing["unit_price"],
                unit_price=unit_price,
            )
            existing["unit_price"] = unit_price

        existing["quantity"] += quantity
        if name:
            existing["name"] = name

    if not merged:
        raise EmptyCartError(warnings)

    items = tuple(LineItem(**merged[product_id]) for product_id in sorted(merged))

    return NormalizedCart(
        items=items,
        content_hash=fingerprint(items),
        total_value=sum(item.subtotal for item in items),
        warnings=tuple(warnings),
    )
