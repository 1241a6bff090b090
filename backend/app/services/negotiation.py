"""Persistence around the negotiation workflow.

The pure pieces (participant resolution, the open gate, the initial state and
the transition function) decide; this module loads rows, hands snapshots to
them and writes the outcome back in a single transaction per request.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .. import models
from ..core.config import settings
from ..crud import crud_booking, crud_conversation, crud_message
from ..utils.messages import (
    build_system_message,
    check_free_text_allowed,
    is_participant,
    preview_label_for_message,
    sort_messages_chronologically,
)
from .conversation_open import (
    NEGOTIATION,
    build_initial_workflow_state,
    should_return_existing,
)
from .conversation_participants import resolve_negotiation_participants
from .workflow_engine import compute_workflow_transition
from .workflow_types import (
    NegotiationNode,
    WorkflowAction,
    WorkflowActionKey,
    WorkflowError,
)

logger = logging.getLogger(__name__)

BOOKING_ENTITY = "booking"
CONCURRENT_UPDATE = "Workflow was updated concurrently. Please retry."


class NegotiationError(Exception):
    """A request the negotiation layer refuses; carries the HTTP status to use."""

    def __init__(self, message: str, status_code: int = 400, field: str = "conversation"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.field = field


def _opening_line(booking: models.Booking) -> str:
    if booking.offer_amount is None:
        return "Negotiation started."
    return f"Negotiation started. Offer: {booking.offer_currency} {booking.offer_amount}"


def _opening_offer(booking: models.Booking) -> dict[str, Any]:
    amount = booking.offer_amount
    return {
        "amount": float(amount) if amount is not None else None,
        "currency": booking.offer_currency,
    }


def open_conversation(
    db: Session,
    entity_type: str,
    entity_id: int,
    conversation_type: str,
    opener: models.User,
) -> models.Conversation:
    """Return the conversation for ``(entity_type, entity_id, conversation_type)``.

    Creates it on first call. Negotiations on a booking get the resolved
    artist / counterpart participants, a workflow instance whose first move
    belongs to the counterpart, and an opening system message.
    """
    existing = crud_conversation.get_conversation_for_entity(
        db, entity_type, entity_id, conversation_type
    )
    if should_return_existing(existing):
        if not is_participant(opener.id, existing.participant_ids):
            raise NegotiationError("Not a participant", 403, "user")
        return existing

    booking: Optional[models.Booking] = None
    first_mover: Optional[int] = None
    if conversation_type == NEGOTIATION:
        if entity_type != BOOKING_ENTITY:
            raise NegotiationError(
                "Negotiation conversations require a booking", 400, "entity_type"
            )
        booking = crud_booking.get_booking_with_details(db, entity_id)
        if booking is None:
            raise NegotiationError("Booking not found", 404, "entity_id")
        resolved = resolve_negotiation_participants(booking)
        if resolved.error:
            raise NegotiationError(resolved.error, 400, "booking")
        if not is_participant(opener.id, resolved.participant_ids):
            raise NegotiationError("Not a participant", 403, "user")
        participant_ids = resolved.participant_ids
        subject = resolved.subject
        first_mover = resolved.other_party_user_id or resolved.artist_user_id
    else:
        participant_ids = [opener.id]
        subject = "Conversation"

    initial = build_initial_workflow_state(conversation_type)
    try:
        convo = crud_conversation.create_conversation(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            conversation_type=conversation_type,
            subject=subject,
            participant_ids=participant_ids,
        )
        if initial is not None:
            db.add(
                models.ConversationWorkflowInstance(
                    conversation_id=convo.id,
                    workflow_key=initial.workflow_key,
                    current_node_key=initial.current_node_key,
                    awaiting_user_id=first_mover,
                    round=initial.round,
                    max_rounds=initial.max_rounds,
                    locked=initial.locked,
                    context=dict(initial.context),
                    deadline_at=_deadline_for(first_mover),
                )
            )
            if booking is not None:
                crud_message.create_message(
                    db,
                    **build_system_message(convo.id, _opening_line(booking)),
                    workflow_node_key="START",
                    payload={"action": "start", "offer": _opening_offer(booking)},
                )
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent open of the same conversation
        db.rollback()
        existing = crud_conversation.get_conversation_for_entity(
            db, entity_type, entity_id, conversation_type
        )
        if existing is None:
            raise
        if not is_participant(opener.id, existing.participant_ids):
            raise NegotiationError("Not a participant", 403, "user")
        logger.info(
            "Concurrent open for %s/%s/%s resolved to conversation %s",
            entity_type,
            entity_id,
            conversation_type,
            existing.id,
        )
        return existing

    db.refresh(convo)
    logger.info(
        "Opened %s conversation %s for %s %s with participants %s",
        conversation_type,
        convo.id,
        entity_type,
        entity_id,
        participant_ids,
    )
    return convo


def _deadline_for(awaiting_user_id: Optional[int]) -> Optional[datetime]:
    if awaiting_user_id is None:
        return None
    return datetime.utcnow() + timedelta(hours=settings.NEGOTIATION_TURN_DEADLINE_HOURS)


def _load_for_participant(
    db: Session, conversation_id: int, user_id: int
) -> models.Conversation:
    convo = crud_conversation.get_conversation(db, conversation_id)
    if convo is None:
        raise NegotiationError("Conversation not found", 404)
    if not is_participant(user_id, convo.participant_ids):
        raise NegotiationError("Not a participant", 403, "user")
    return convo


def handle_action(
    db: Session,
    conversation_id: int,
    user_id: int,
    action_key: Any,
    payload: Optional[dict[str, Any]] = None,
    client_msg_id: Optional[str] = None,
) -> models.Message:
    """Run one negotiation move and persist everything it implies.

    Returns the stored action message. A repeated ``client_msg_id`` returns
    the message stored the first time without running the move again.
    """
    convo = _load_for_participant(db, conversation_id, user_id)

    if client_msg_id:
        previous = crud_message.get_message_by_client_id(
            db, conversation_id, user_id, client_msg_id
        )
        if previous is not None:
            logger.info(
                "Replaying message %s for client_msg_id=%s", previous.id, client_msg_id
            )
            return previous

    instance = crud_conversation.get_workflow_instance(db, conversation_id, for_update=True)
    if instance is None:
        raise NegotiationError("Workflow instance not found", 404)

    participant_ids = convo.participant_ids
    other_user_id = next((uid for uid in participant_ids if uid != user_id), user_id)
    result = compute_workflow_transition(
        instance.to_state(),
        WorkflowAction(user_id=user_id, action_key=action_key, payload=dict(payload or {})),
        other_user_id,
    )
    if isinstance(result, WorkflowError):
        db.rollback()
        logger.info(
            "Rejected %s from user %s on conversation %s: %s",
            action_key,
            user_id,
            conversation_id,
            result.error,
        )
        raise NegotiationError(result.error, 400, result.kind.value)

    booking = None
    if convo.entity_type == BOOKING_ENTITY and convo.entity_id is not None:
        booking = crud_booking.get_booking(db, convo.entity_id)

    message_payload = dict(result.message.payload)
    try:
        if booking is not None:
            if result.message.action_key == WorkflowActionKey.PROPOSE_CHANGE.value:
                proposal = crud_booking.create_proposal(
                    db,
                    booking_id=booking.id,
                    created_by=user_id,
                    round=result.new_round,
                    proposed_terms=payload or {},
                )
                message_payload["proposalId"] = proposal.id
            elif result.should_lock:
                crud_booking.close_active_proposal(
                    db,
                    booking.id,
                    models.ProposalStatus.ACCEPTED
                    if result.next_node_key == NegotiationNode.ACCEPTED.value
                    else models.ProposalStatus.REJECTED,
                )
            crud_booking.apply_negotiation_directives(
                booking,
                result.booking_status_update,
                result.booking_offer_amount_update,
            )

        instance.current_node_key = result.next_node_key
        instance.awaiting_user_id = result.next_awaiting_user_id
        instance.round = result.new_round
        # A lock is never released
        instance.locked = bool(instance.locked or result.should_lock)
        instance.deadline_at = _deadline_for(result.next_awaiting_user_id)

        msg = crud_message.create_message(
            db,
            conversation_id=conversation_id,
            sender_id=result.message.sender_id,
            message_type=models.MessageType.ACTION,
            action_key=result.message.action_key,
            payload=message_payload,
            round=result.message.round,
            workflow_node_key=result.message.workflow_node_key,
            client_msg_id=client_msg_id,
        )
        if result.system_message is not None:
            crud_message.create_message(
                db,
                **build_system_message(conversation_id, result.system_message.body),
                workflow_node_key=result.system_message.workflow_node_key,
            )
        crud_conversation.touch_conversation(convo)
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(
            "Concurrent transition on conversation %s; rejecting %s from user %s",
            conversation_id,
            action_key,
            user_id,
        )
        raise NegotiationError(CONCURRENT_UPDATE, 409, "workflow")
    except IntegrityError:
        db.rollback()
        if client_msg_id:
            previous = crud_message.get_message_by_client_id(
                db, conversation_id, user_id, client_msg_id
            )
            if previous is not None:
                return previous
        raise

    db.refresh(msg)
    logger.info(
        "Conversation %s: %s by user %s moved %s -> %s (round %s)",
        conversation_id,
        result.message.action_key,
        user_id,
        result.message.workflow_node_key,
        result.next_node_key,
        result.new_round,
    )
    return msg


def post_text_message(
    db: Session,
    conversation_id: int,
    user_id: int,
    body: str,
    client_msg_id: Optional[str] = None,
) -> models.Message:
    convo = _load_for_participant(db, conversation_id, user_id)
    rejection = check_free_text_allowed(convo.conversation_type)
    if rejection:
        raise NegotiationError(rejection, 400, "body")

    if client_msg_id:
        previous = crud_message.get_message_by_client_id(
            db, conversation_id, user_id, client_msg_id
        )
        if previous is not None:
            return previous

    msg = crud_message.create_message(
        db,
        conversation_id=conversation_id,
        sender_id=user_id,
        body=body,
        message_type=models.MessageType.TEXT,
        client_msg_id=client_msg_id,
    )
    crud_conversation.touch_conversation(convo)
    db.commit()
    db.refresh(msg)
    return msg


def list_messages(
    db: Session,
    conversation_id: int,
    user_id: int,
    limit: Optional[int] = None,
) -> List[models.Message]:
    """Latest page of messages, oldest first."""
    _load_for_participant(db, conversation_id, user_id)
    rows = crud_message.get_recent_messages(
        db, conversation_id, limit=limit or settings.MESSAGE_PAGE_SIZE
    )
    return sort_messages_chronologically(reversed(rows))


def get_conversation_detail(
    db: Session, conversation_id: int, user_id: int
) -> models.Conversation:
    return _load_for_participant(db, conversation_id, user_id)


def list_conversations_for_user(
    db: Session, user_id: int
) -> List[Tuple[models.Conversation, str]]:
    """The user's conversations with an inbox preview label each."""
    items = []
    for convo in crud_conversation.get_conversations_for_user(db, user_id):
        last = crud_message.get_last_message(db, convo.id)
        items.append((convo, preview_label_for_message(last)))
    return items
