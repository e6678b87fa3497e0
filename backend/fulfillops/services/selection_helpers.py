"""
Selection Helpers - checkbox state for fulfillment item selectors

Pure helpers over ItemSelection lists: toggling units, select-all,
summary counts, and turning a selection back into the
[{"item_id": ..., "qty": ...}] rows a fulfillment stores.

Each helper returns a new list; the input is left as it was.
"""
from typing import List

from fulfillops.schemas.fulfillment import (
    FulfillmentItem,
    ItemSelection,
    SelectionSummary,
    UnitSlot,
)


def _set_checked(entry: ItemSelection, checked: bool) -> ItemSelection:
    return ItemSelection(
        item_id=entry.item_id,
        item=entry.item,
        selection=[UnitSlot(index=slot.index, checked=checked) for slot in entry.selection],
    )


def set_unit_checked(
    selections: List[ItemSelection], item_id: int, index: int, checked: bool
) -> List[ItemSelection]:
    """Check or uncheck the unit at ``index`` of ``item_id``."""
    updated = []
    for entry in selections:
        if entry.item_id == item_id:
            entry = ItemSelection(
                item_id=entry.item_id,
                item=entry.item,
                selection=[
                    UnitSlot(index=slot.index, checked=checked) if slot.index == index else slot
                    for slot in entry.selection
                ],
            )
        updated.append(entry)
    return updated


def set_item_checked(selections: List[ItemSelection], item_id: int, checked: bool) -> List[ItemSelection]:
    """Check or uncheck every unit of one item."""
    return [
        _set_checked(entry, checked) if entry.item_id == item_id else entry
        for entry in selections
    ]


def set_all_checked(selections: List[ItemSelection], checked: bool) -> List[ItemSelection]:
    return [_set_checked(entry, checked) for entry in selections]


def selectable_items(selections: List[ItemSelection]) -> List[ItemSelection]:
    """
    Entries for items on the order.

    Orphaned entries (unmatched refund lines, allocations against removed
    line items) carry checked slots that nobody picked; they never count.
    """
    return [entry for entry in selections if not entry.is_orphaned]


def summarize_selection(selections: List[ItemSelection]) -> SelectionSummary:
    selections = selectable_items(selections)
    total = sum(entry.unit_count for entry in selections)
    selected = sum(entry.checked_count for entry in selections)
    return SelectionSummary(
        selected_units=selected,
        total_units=total,
        item_count=len(selections),
        all_selected=total > 0 and selected == total,
        some_selected=0 < selected < total,
    )


def selection_to_fulfillment_items(selections: List[ItemSelection]) -> List[FulfillmentItem]:
    """
    Rows to store in a fulfillment's _items metadata.

    Counts checked units per item; items with nothing checked and orphaned
    entries are left out.
    """
    counts = {}
    for entry in selectable_items(selections):
        checked = entry.checked_count
        if checked:
            counts[entry.item_id] = counts.get(entry.item_id, 0) + checked
    return [FulfillmentItem(item_id=item_id, qty=qty) for item_id, qty in counts.items()]
