"""
Fulfillment Session Service

Status transition validation for one fulfillment's editing session.

    new -> draft | fulfilled
    draft -> editing | fulfilled | removed
    fulfilled -> editing | removed
    editing -> draft | fulfilled | removed

A lock set on the stored record puts it in the read-only ``locked`` state
whatever its is_fulfilled flag says. Available units have to be resolved
again after every transition out of ``new`` or ``editing``.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple

from fulfillops.exceptions import FulfillmentLockedError, InvalidStateError, ValidationError
from fulfillops.schemas.fulfillment import FulfillmentRecord, ItemSelection
from fulfillops.logging_config import get_logger

logger = get_logger(__name__)


class SessionState(str, Enum):
    NEW = "new"
    DRAFT = "draft"
    FULFILLED = "fulfilled"
    EDITING = "editing"
    REMOVED = "removed"
    LOCKED = "locked"


VALID_TRANSITIONS: Dict[SessionState, List[SessionState]] = {
    SessionState.NEW: [SessionState.DRAFT, SessionState.FULFILLED],
    SessionState.DRAFT: [SessionState.EDITING, SessionState.FULFILLED, SessionState.REMOVED],
    SessionState.FULFILLED: [SessionState.EDITING, SessionState.REMOVED],
    SessionState.EDITING: [SessionState.DRAFT, SessionState.FULFILLED, SessionState.REMOVED],
    SessionState.REMOVED: [],  # Terminal state
    SessionState.LOCKED: [],  # Terminal, read-only
}

NOTHING_SELECTED_MESSAGE = "Select at least one item to fulfill."


def session_state_for(record: Optional[FulfillmentRecord]) -> SessionState:
    """Starting state of a session opened on ``record`` (None for a new one)."""
    if record is None or record.id is None:
        return SessionState.NEW
    if record.is_locked:
        return SessionState.LOCKED
    if record.is_fulfilled:
        return SessionState.FULFILLED
    return SessionState.DRAFT


def validate_transition(from_state: SessionState, to_state: SessionState) -> Tuple[bool, str]:
    """
    Validate a session transition.

    Returns:
        (is_valid, error_message) - message is empty when valid
    """
    allowed = VALID_TRANSITIONS.get(from_state, [])
    if to_state in allowed:
        return True, ""
    if not allowed:
        return False, f"Cannot transition from terminal state '{from_state.value}'"
    return False, (
        f"Invalid transition: '{from_state.value}' -> '{to_state.value}'. "
        f"Allowed: {', '.join(s.value for s in allowed)}"
    )


def transition(
    from_state: SessionState,
    to_state: SessionState,
    *,
    fulfillment_id: Optional[int] = None,
    lock_message: Optional[str] = None,
) -> SessionState:
    """
    Move a session to ``to_state``.

    Raises:
        FulfillmentLockedError: the session is locked
        InvalidStateError: the transition is not allowed
    """
    if from_state == SessionState.LOCKED:
        if lock_message:
            raise FulfillmentLockedError(lock_message, fulfillment_id=fulfillment_id)
        raise FulfillmentLockedError(fulfillment_id=fulfillment_id)

    is_valid, error = validate_transition(from_state, to_state)
    if not is_valid:
        raise InvalidStateError(
            error,
            current_state=from_state.value,
            allowed_states=[s.value for s in VALID_TRANSITIONS.get(from_state, [])],
        )

    logger.info(
        "Fulfillment session transition",
        extra={"fulfillment_id": fulfillment_id, "from": from_state.value, "to": to_state.value},
    )
    return to_state


def require_selection(selections: List[ItemSelection]) -> None:
    """Reject a save or fulfil with no unit checked."""
    if not any(entry.checked_count for entry in selections if not entry.is_orphaned):
        raise ValidationError(NOTHING_SELECTED_MESSAGE, field="items")
