"""Domain events for the CartSession aggregate.

Payloads carry enough of the session for collaborators (recovery emails,
analytics) to act without reading the store back.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from recovery.domain import recovery


@recovery.event(part_of="CartSession")
class CartTracked:
    """A new cart session was opened for a customer."""

    __version__ = 1

    session_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    display_name = String(max_length=255)
    items = Text(required=True)  # JSON: list of {product_id, name, unit_price, quantity}
    total_value = Integer(default=0)
    tracked_at = DateTime(required=True)


@recovery.event(part_of="CartSession")
class CartUpdated:
    """The contents of a live cart session changed."""

    __version__ = 1

    session_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    items = Text(required=True)
    total_value = Integer(default=0)
    previous_total_value = Integer(default=0)
    updated_at = DateTime(required=True)


@recovery.event(part_of="CartSession")
class CartAbandoned:
    """A cart session sat idle past the abandonment threshold."""

    __version__ = 1

    session_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    display_name = String(max_length=255)
    items = Text(required=True)
    total_value = Integer(default=0)
    last_updated_at = DateTime(required=True)
    abandoned_at = DateTime(required=True)


@recovery.event(part_of="CartSession")
class CartRecovered:
    """A cart session proceeded to checkout completion."""

    __version__ = 1

    session_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    total_value = Integer(default=0)
    recovered_from = String(required=True)  # "Active" or "Abandoned"
    recovered_at = DateTime(required=True)


@recovery.event(part_of="CartSession")
class CartExpired:
    """A cart session left the live set without being recovered."""

    __version__ = 1

    session_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    total_value = Integer(default=0)
    reason = String(required=True)  # "idle" or "emptied"
    expired_at = DateTime(required=True)
