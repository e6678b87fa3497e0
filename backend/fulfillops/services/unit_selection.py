"""
Unit Selection Service

Per-unit building blocks of quantity reconciliation:

- expand_order / expand_allocation turn quantities into unit slots
- match_refund_item maps a refund line back to an order line item
- combine_items adds two selection sets together per item
- reduce_items subtracts one selection set from another per item

Every function is pure. Inputs are never mutated and slot indices in any
returned selection run 0..n-1.
"""
from typing import Dict, Iterable, List

from fulfillops.schemas.fulfillment import (
    ItemSelection,
    LineItem,
    OrderSnapshot,
    RefundLineItem,
    UnitSlot,
)
from fulfillops.logging_config import get_logger

logger = get_logger(__name__)


def _slots(count: int, checked: bool) -> List[UnitSlot]:
    return [UnitSlot(index=i, checked=checked) for i in range(max(count, 0))]


def _renumber(slots: Iterable[UnitSlot]) -> List[UnitSlot]:
    return [UnitSlot(index=i, checked=slot.checked) for i, slot in enumerate(slots)]


def _with_slots(entry: ItemSelection, slots: List[UnitSlot]) -> ItemSelection:
    return ItemSelection(item_id=entry.item_id, item=entry.item, selection=slots)


def _by_item_id(selections: Iterable[ItemSelection]) -> Dict[int, ItemSelection]:
    """
    Index a selection list by item id, keeping first-seen order.

    Duplicate ids inside one list are merged the same way combine_items
    merges across lists.
    """
    indexed: Dict[int, ItemSelection] = {}
    for entry in selections:
        existing = indexed.get(entry.item_id)
        if existing is None:
            indexed[entry.item_id] = entry
        else:
            indexed[entry.item_id] = _with_slots(
                existing, _renumber(existing.selection + entry.selection)
            )
    return indexed


# ============================================================================
# Expansion
# ============================================================================

def expand_order(order: OrderSnapshot) -> List[ItemSelection]:
    """One entry per line item with ``quantity`` unchecked slots."""
    return [
        ItemSelection(
            item_id=line_item.id,
            item=line_item,
            selection=_slots(line_item.quantity, checked=False),
        )
        for line_item in order.line_items
        if line_item.id is not None
    ]


def expand_allocation(order: OrderSnapshot, item_id: int, qty: int) -> ItemSelection:
    """
    ``qty`` checked slots for ``item_id``.

    An item id that is no longer on the order (the line was removed after the
    units were allocated) resolves to the placeholder ``LineItem()``; the slot
    count is unaffected.
    """
    line_item = order.find_line_item(item_id)
    if line_item is None:
        logger.warning(
            "Allocation references unknown line item",
            extra={"order_id": order.id, "item_id": item_id, "qty": qty},
        )
        line_item = LineItem()
    return ItemSelection(item_id=item_id, item=line_item, selection=_slots(qty, checked=True))


# ============================================================================
# Refund matching
# ============================================================================

def match_refund_item(order: OrderSnapshot, refund_line_item: RefundLineItem) -> int:
    """
    Resolve a refund line to the id of the order line item it refunds.

    Matches on product_id; the first matching line item wins. Without a
    match the refund line's own id is returned, which keeps the refunded
    units visible as an orphaned entry instead of dropping them.
    """
    if refund_line_item.product_id is not None:
        for line_item in order.line_items:
            if line_item.product_id == refund_line_item.product_id:
                return line_item.id
    logger.warning(
        "Refund line item has no matching order line item",
        extra={
            "order_id": order.id,
            "refund_line_item_id": refund_line_item.id,
            "product_id": refund_line_item.product_id,
        },
    )
    return refund_line_item.id


def expand_refund_item(order: OrderSnapshot, refund_line_item: RefundLineItem) -> ItemSelection:
    """Refunded units of one refund line as checked slots on the matched item."""
    item_id = match_refund_item(order, refund_line_item)
    return expand_allocation(order, item_id, abs(refund_line_item.quantity))


# ============================================================================
# Combine / reduce
# ============================================================================

def combine_items(a: List[ItemSelection], b: List[ItemSelection]) -> List[ItemSelection]:
    """
    Add ``b`` to ``a`` per item.

    Items on both sides get a's slots followed by b's, renumbered. Items on
    one side only are carried over. Output keeps a's order, then b-only ids
    in b's order.
    """
    left = _by_item_id(a)
    right = _by_item_id(b)

    combined: List[ItemSelection] = []
    for item_id, entry in left.items():
        other = right.get(item_id)
        if other is None:
            combined.append(_with_slots(entry, list(entry.selection)))
        else:
            combined.append(_with_slots(entry, _renumber(entry.selection + other.selection)))
    for item_id, entry in right.items():
        if item_id not in left:
            combined.append(_with_slots(entry, list(entry.selection)))
    return combined


def reduce_items(base: List[ItemSelection], to_remove: List[ItemSelection]) -> List[ItemSelection]:
    """
    Subtract ``to_remove`` from ``base`` per item, by count.

    For an item on both sides the first min(len(remove), len(base)) slots of
    base are dropped by position, whatever their checked flag, and the rest
    renumbered. Items only in ``to_remove`` are appended unchanged so a
    reference the base no longer tracks is not lost.
    """
    kept = _by_item_id(base)
    removing = _by_item_id(to_remove)

    reduced: List[ItemSelection] = []
    for item_id, entry in kept.items():
        other = removing.get(item_id)
        if other is None:
            reduced.append(_with_slots(entry, list(entry.selection)))
            continue
        drop = min(len(other.selection), len(entry.selection))
        reduced.append(_with_slots(entry, _renumber(entry.selection[drop:])))
    for item_id, entry in removing.items():
        if item_id not in kept:
            reduced.append(_with_slots(entry, list(entry.selection)))
    return reduced


def combine_all(groups: Iterable[List[ItemSelection]]) -> List[ItemSelection]:
    """Fold combine_items over any number of selection sets."""
    total: List[ItemSelection] = []
    for group in groups:
        total = combine_items(total, group)
    return total
