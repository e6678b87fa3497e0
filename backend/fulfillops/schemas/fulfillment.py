"""
Fulfillment Schemas

Order, refund and fulfillment snapshots as read from the store, and the
per-unit selection structures the reconciliation services produce.
"""
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from fulfillops.core.settings import settings
from fulfillops.logging_config import get_logger

logger = get_logger(__name__)

ITEMS_META_KEY = "_items"
LOCKED_META_KEY = "_is_locked"
LOCK_MESSAGE_META_KEY = "_lock_message"


# ============================================================================
# Order / Refund snapshots
# ============================================================================

class LineItem(BaseModel):
    """
    A line item of an order.

    Display fields (name, sku, price, image...) are passed through untouched.
    ``LineItem()`` with no fields is the placeholder used for stale references.
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: int = 0

    @property
    def is_placeholder(self) -> bool:
        return self.id is None


class OrderSnapshot(BaseModel):
    """An order and its line items as read at one point in time."""
    model_config = ConfigDict(extra="allow")

    id: int
    line_items: List[LineItem] = Field(default_factory=list)

    def find_line_item(self, item_id: int) -> Optional[LineItem]:
        for line_item in self.line_items:
            if line_item.id == item_id:
                return line_item
        return None


class RefundLineItem(BaseModel):
    """A refunded line. Ids do not match the order's line item ids."""
    model_config = ConfigDict(extra="allow")

    id: int
    product_id: Optional[int] = None
    quantity: int = 0  # usually negative; only the magnitude is used


class RefundRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    line_items: List[RefundLineItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices("line_items", "refunded_line_items"),
    )


# ============================================================================
# Fulfillment records
# ============================================================================

class MetaEntry(BaseModel):
    """One key/value metadata entry of a fulfillment record."""
    id: Optional[int] = None
    key: str
    value: Any = None


class FulfillmentItem(BaseModel):
    """Units of one line item allocated to a fulfillment."""
    item_id: int
    qty: int


class FulfillmentRecord(BaseModel):
    """
    A stored fulfillment as supplied by the persistence layer.

    Only the metadata entries below are read:
        _items:        [{"item_id": ..., "qty": ...}, ...]
        _is_locked:    truthy when the record is read-only
        _lock_message: optional text shown for a locked record
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    status: str = "unfulfilled"
    is_fulfilled: bool = False
    meta_data: List[MetaEntry] = Field(default_factory=list)

    def get_meta(self, key: str, default: Any = None) -> Any:
        for entry in self.meta_data:
            if entry.key == key:
                return entry.value
        return default

    @property
    def allocated_items(self) -> List[FulfillmentItem]:
        raw = self.get_meta(ITEMS_META_KEY)
        if raw is None:
            # Records flattened by the caller carry the rows directly
            raw = (self.model_extra or {}).get("allocated_items")
        if not isinstance(raw, list):
            return []
        items = []
        for row in raw:
            if isinstance(row, FulfillmentItem):
                items.append(row)
                continue
            try:
                items.append(FulfillmentItem.model_validate(row))
            except PydanticValidationError:
                logger.warning(
                    "Skipping malformed fulfillment item row",
                    extra={"fulfillment_id": self.id, "row": repr(row)},
                )
        return items

    @property
    def is_locked(self) -> bool:
        value = self.get_meta(LOCKED_META_KEY, False)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes")
        return bool(value)

    @property
    def lock_message(self) -> str:
        return self.get_meta(LOCK_MESSAGE_META_KEY) or settings.FULFILLMENT_LOCK_MESSAGE


# ============================================================================
# Unit selections
# ============================================================================

class UnitSlot(BaseModel):
    """One countable unit of a line item's quantity."""
    model_config = ConfigDict(frozen=True)

    index: int
    checked: bool = False


class ItemSelection(BaseModel):
    """The unit slots one item currently represents, indexed 0..n-1."""
    item_id: int
    item: LineItem = Field(default_factory=LineItem)
    selection: List[UnitSlot] = Field(default_factory=list)

    @property
    def unit_count(self) -> int:
        return len(self.selection)

    @property
    def checked_count(self) -> int:
        return sum(1 for slot in self.selection if slot.checked)

    @property
    def is_orphaned(self) -> bool:
        """Units kept for an item that is not on the order (never selectable)."""
        return self.item.is_placeholder


class SelectionSummary(BaseModel):
    """Selected vs total units, for summary components."""
    selected_units: int
    total_units: int
    item_count: int
    all_selected: bool  # every unit checked (and at least one unit)
    some_selected: bool  # at least one, but not every, unit checked


# ============================================================================
# API request / response bodies
# ============================================================================

class FulfillmentContext(BaseModel):
    """Snapshots needed to reconcile one order."""
    order: OrderSnapshot
    fulfillments: List[FulfillmentRecord] = Field(default_factory=list)
    refunds: List[RefundRecord] = Field(default_factory=list)


class AvailabilityResponse(BaseModel):
    order_id: int
    items: List[ItemSelection]
    summary: SelectionSummary


class EditableSelectionResponse(BaseModel):
    order_id: int
    fulfillment_id: int
    state: str
    is_locked: bool
    lock_message: Optional[str] = None
    items: List[ItemSelection]
    summary: SelectionSummary


class SelectionItemsRequest(BaseModel):
    items: List[ItemSelection]


class SelectionItemsResponse(BaseModel):
    order_id: int
    items: List[FulfillmentItem]
