"""
API endpoints for fulfillment item availability.

Stateless: every request carries the order, fulfillment and refund
snapshots and the answer is recomputed from them.
"""
from fastapi import APIRouter

from fulfillops.exceptions import NotFoundError, ValidationError
from fulfillops.schemas.fulfillment import (
    AvailabilityResponse,
    EditableSelectionResponse,
    FulfillmentContext,
    SelectionItemsRequest,
    SelectionItemsResponse,
)
from fulfillops.services.availability import resolve_availability, resolve_editable_selection
from fulfillops.services.fulfillment_session import (
    SessionState,
    require_selection,
    session_state_for,
)
from fulfillops.services.selection_helpers import (
    selection_to_fulfillment_items,
    summarize_selection,
)


router = APIRouter(prefix="/orders/{order_id}/fulfillments", tags=["fulfillments"])


def _check_order_id(order_id: int, context: FulfillmentContext) -> None:
    if context.order.id != order_id:
        raise ValidationError(
            "Order ID in path does not match order in body",
            field="order.id",
            value=context.order.id,
        )


@router.post("/availability", response_model=AvailabilityResponse)
def get_fulfillment_availability(order_id: int, context: FulfillmentContext):
    """
    Units of the order still free for a new fulfillment.

    Items fully consumed by refunds or existing fulfillments are omitted.
    """
    _check_order_id(order_id, context)
    items = resolve_availability(context.order, context.fulfillments, context.refunds)
    return AvailabilityResponse(
        order_id=order_id,
        items=items,
        summary=summarize_selection(items),
    )


@router.post("/{fulfillment_id}/selection", response_model=EditableSelectionResponse)
def get_fulfillment_selection(order_id: int, fulfillment_id: int, context: FulfillmentContext):
    """
    Units shown when editing a stored fulfillment.

    Its own units are checked; units still free are unchecked.
    """
    _check_order_id(order_id, context)
    fulfillment = next((f for f in context.fulfillments if f.id == fulfillment_id), None)
    if fulfillment is None:
        raise NotFoundError("Fulfillment", fulfillment_id)

    state = session_state_for(fulfillment)
    items = resolve_editable_selection(
        context.order, fulfillment, context.fulfillments, context.refunds
    )
    return EditableSelectionResponse(
        order_id=order_id,
        fulfillment_id=fulfillment_id,
        state=state.value,
        is_locked=state == SessionState.LOCKED,
        lock_message=fulfillment.lock_message if state == SessionState.LOCKED else None,
        items=items,
        summary=summarize_selection(items),
    )


@router.post("/items", response_model=SelectionItemsResponse)
def get_selection_items(order_id: int, request: SelectionItemsRequest):
    """Convert a checked selection into the item rows a fulfillment stores."""
    require_selection(request.items)
    return SelectionItemsResponse(
        order_id=order_id,
        items=selection_to_fulfillment_items(request.items),
    )
