"""
Fulfillment Availability Service

Answers "which units of this order are still free to fulfil?" from three
snapshots: the order, its stored fulfillments and its refunds.

Logic:
1. Expand every order line item into unchecked unit slots
2. Subtract the units removed by refunds (matched back by product)
3. Subtract the units already allocated to any fulfillment
4. Drop items with no units left

Availability is recomputed from scratch whenever any snapshot changes;
nothing here is cached or mutated.
"""
from typing import List, Optional, Sequence

from fulfillops.schemas.fulfillment import (
    FulfillmentRecord,
    ItemSelection,
    OrderSnapshot,
    RefundRecord,
)
from fulfillops.services.unit_selection import (
    combine_all,
    expand_allocation,
    expand_order,
    expand_refund_item,
    reduce_items,
)
from fulfillops.logging_config import get_logger

logger = get_logger(__name__)


def get_refunded_units(order: OrderSnapshot, refunds: Sequence[RefundRecord]) -> List[ItemSelection]:
    """All refunded units, one entry per matched item id."""
    return combine_all(
        [expand_refund_item(order, line_item) for line_item in refund.line_items]
        for refund in refunds
    )


def get_items_from_fulfillment(order: OrderSnapshot, fulfillment: FulfillmentRecord) -> List[ItemSelection]:
    """The units a fulfillment has allocated, all checked."""
    return combine_all(
        [expand_allocation(order, row.item_id, row.qty)]
        for row in fulfillment.allocated_items
    )


def get_allocated_units(order: OrderSnapshot, fulfillments: Sequence[FulfillmentRecord]) -> List[ItemSelection]:
    """All units allocated across ``fulfillments``, one entry per item id."""
    return combine_all(get_items_from_fulfillment(order, f) for f in fulfillments)


def resolve_availability(
    order: OrderSnapshot,
    fulfillments: Sequence[FulfillmentRecord],
    refunds: Sequence[RefundRecord],
) -> List[ItemSelection]:
    """
    Order units not claimed by any refund or existing fulfillment.

    Over-claimed items saturate at zero units and are left out of the
    result; over-allocation in the source data is not reported.

    Args:
        order: Order snapshot with its line items
        fulfillments: Stored fulfillments of the order
        refunds: Refunds of the order

    Returns:
        One ItemSelection per item with units left, all unchecked
    """
    available = expand_order(order)

    if refunds:
        available = reduce_items(available, get_refunded_units(order, refunds))

    if fulfillments:
        available = reduce_items(available, get_allocated_units(order, fulfillments))

    available = [entry for entry in available if entry.selection]

    logger.debug(
        "Resolved fulfillment availability",
        extra={
            "order_id": order.id,
            "fulfillments": len(fulfillments),
            "refunds": len(refunds),
            "available_units": sum(len(entry.selection) for entry in available),
        },
    )
    return available


def resolve_editable_selection(
    order: OrderSnapshot,
    fulfillment: Optional[FulfillmentRecord],
    fulfillments: Sequence[FulfillmentRecord],
    refunds: Sequence[RefundRecord],
) -> List[ItemSelection]:
    """
    Units offered while creating or editing a fulfillment.

    The fulfillment's own units come first, checked, followed by the units
    no fulfillment or refund has claimed, unchecked. A new fulfillment
    (``None`` or no id) just gets the free units.

    ``fulfillments`` is every stored fulfillment of the order; if the one
    being edited is missing from it, it is counted as allocated anyway.
    Orphaned entries (unmatched refund lines, other fulfillments' stale
    references) are not offered; they belong to no selectable line item.
    """
    if fulfillment is None or fulfillment.id is None:
        free = resolve_availability(order, fulfillments, refunds)
        return [entry for entry in free if not entry.is_orphaned]

    stored = [f for f in fulfillments if f.id != fulfillment.id] + [fulfillment]
    free = resolve_availability(order, stored, refunds)
    return combine_all([
        get_items_from_fulfillment(order, fulfillment),
        [entry for entry in free if not entry.is_orphaned],
    ])
