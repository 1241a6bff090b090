"""Transition function for the ``booking_negotiation_v1`` workflow.

``compute_workflow_transition`` is pure: it reads one instance snapshot and
one action and returns either the next state plus the side effects the caller
must persist, or a ``WorkflowError``. Callers are responsible for committing
one transition per instance at a time.

    PROPOSE_CHANGE  AWAITING_ARTIST <-> AWAITING_ORGANIZER, round + 1
    ACCEPT          -> ACCEPTED, booking -> contracting, locked
    DECLINE         -> DECLINED, booking -> cancelled, locked
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import Any, Optional

from ..models.booking_status import BookingStatus
from .workflow_types import (
    ActionMessage,
    NegotiationNode,
    SystemMessage,
    WorkflowAction,
    WorkflowActionKey,
    WorkflowActionResult,
    WorkflowError,
    WorkflowErrorKind,
    WorkflowInstanceState,
    WorkflowTransitionResult,
)
from .workflow_validator import (
    parse_action_key,
    validate_action,
    validate_max_rounds,
    validate_not_locked,
    validate_turn,
)

logger = logging.getLogger(__name__)

_TERMINAL_OUTCOMES = {
    WorkflowActionKey.ACCEPT: (
        NegotiationNode.ACCEPTED,
        BookingStatus.CONTRACTING,
        "Negotiation accepted.",
    ),
    WorkflowActionKey.DECLINE: (
        NegotiationNode.DECLINED,
        BookingStatus.CANCELLED,
        "Negotiation declined.",
    ),
}


def _offer_amount(payload: Optional[dict[str, Any]]) -> Optional[Any]:
    if not payload:
        return None
    amount = payload.get("offerAmount")
    # bool is an int subclass; a stray true/false is not an amount
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        return None
    # NaN and infinities would clear the stored offer
    finite = amount.is_finite() if isinstance(amount, Decimal) else math.isfinite(amount)
    if not finite:
        return None
    return amount


def _next_proposal_node(current_node_key: str) -> NegotiationNode:
    if current_node_key == NegotiationNode.AWAITING_ARTIST:
        return NegotiationNode.AWAITING_ORGANIZER
    return NegotiationNode.AWAITING_ARTIST


def _action_message(
    instance: WorkflowInstanceState,
    action: WorkflowAction,
    action_key: WorkflowActionKey,
) -> ActionMessage:
    return ActionMessage(
        sender_id=action.user_id,
        action_key=action_key.value,
        payload={**(action.payload or {}), "proposalId": None},
        round=instance.round,
        workflow_node_key=getattr(instance.current_node_key, "value", instance.current_node_key),
    )


def compute_workflow_transition(
    instance: WorkflowInstanceState,
    action: WorkflowAction,
    other_participant_user_id: int,
) -> WorkflowActionResult:
    """Apply ``action`` to ``instance`` and describe the outcome.

    Checks run in a fixed order and stop at the first failure: locked, turn,
    action key, then (proposals only) the round ceiling. A locked instance
    therefore rejects every action the same way, whoever sends it.
    """
    error = validate_not_locked(instance)
    if error:
        return WorkflowError(error, WorkflowErrorKind.LOCKED)

    error = validate_turn(instance, action.user_id)
    if error:
        return WorkflowError(error, WorkflowErrorKind.TURN)

    error = validate_action(action.action_key)
    if error:
        return WorkflowError(error, WorkflowErrorKind.INVALID_ACTION)
    action_key = parse_action_key(action.action_key)

    if action_key is WorkflowActionKey.PROPOSE_CHANGE:
        error = validate_max_rounds(instance)
        if error:
            return WorkflowError(error, WorkflowErrorKind.MAX_ROUNDS)

        next_node = _next_proposal_node(instance.current_node_key)
        logger.debug(
            "Proposal round %s -> %s, turn passes to user %s",
            instance.round,
            instance.round + 1,
            other_participant_user_id,
        )
        return WorkflowTransitionResult(
            next_node_key=next_node.value,
            next_awaiting_user_id=other_participant_user_id,
            new_round=instance.round + 1,
            should_lock=False,
            booking_status_update=None,
            booking_offer_amount_update=_offer_amount(action.payload),
            message=_action_message(instance, action, action_key),
            system_message=None,
        )

    node, booking_status, body = _TERMINAL_OUTCOMES[action_key]
    return WorkflowTransitionResult(
        next_node_key=node.value,
        next_awaiting_user_id=None,
        new_round=instance.round,
        should_lock=True,
        booking_status_update=booking_status.value,
        booking_offer_amount_update=None,
        message=_action_message(instance, action, action_key),
        system_message=SystemMessage(body=body, workflow_node_key=node.value),
    )
