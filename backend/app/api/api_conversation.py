# backend/app/api/api_conversation.py

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas import (
    ConversationDetailResponse,
    ConversationListItem,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
    WorkflowActionRequest,
)
from ..services import negotiation
from ..services.negotiation import NegotiationError
from ..services.workflow_validator import parse_action_key
from ..utils import error_response
from .dependencies import get_current_active_user

router = APIRouter(tags=["conversations"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)
# ‣ Note: no prefix here.  main.py mounts the router under settings.API_V1_STR


def _as_http_error(exc: NegotiationError):
    return error_response(exc.message, {exc.field: exc.message}, exc.status_code)


@router.get("/conversations", response_model=List[ConversationListItem])
def list_my_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Conversations the current user participates in, latest activity first."""
    items = negotiation.list_conversations_for_user(db, current_user.id)
    return [
        ConversationListItem.model_validate(convo).model_copy(update={"preview_label": label})
        for convo, label in items
    ]


@router.get("/conversations/{conversation_id}", response_model=ConversationDetailResponse)
def read_conversation(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Conversation with its workflow state and participant ids."""
    try:
        convo = negotiation.get_conversation_detail(db, conversation_id, current_user.id)
    except NegotiationError as exc:
        raise _as_http_error(exc)
    return ConversationDetailResponse.model_validate(convo)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=List[MessageResponse],
)
def read_messages(
    conversation_id: int,
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    try:
        return negotiation.list_messages(db, conversation_id, current_user.id, limit=limit)
    except NegotiationError as exc:
        raise _as_http_error(exc)


@router.post(
    "/entities/{entity_type}/{entity_id}/conversation/{conversation_type}/open",
    response_model=ConversationResponse,
)
def open_entity_conversation(
    entity_type: str,
    entity_id: int,
    conversation_type: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Idempotently create or fetch the conversation bound to an entity."""
    try:
        return negotiation.open_conversation(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            conversation_type=conversation_type,
            opener=current_user,
        )
    except NegotiationError as exc:
        raise _as_http_error(exc)


@router.post(
    "/conversations/{conversation_id}/actions",
    response_model=MessageResponse,
)
def submit_action(
    conversation_id: int,
    action_in: WorkflowActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Apply one negotiation move (PROPOSE_CHANGE, ACCEPT, DECLINE)."""
    action_key = parse_action_key(action_in.action_key)
    if action_key is None:
        raise error_response(
            "Invalid action",
            {"action_key": "Invalid action"},
            status.HTTP_400_BAD_REQUEST,
        )
    try:
        return negotiation.handle_action(
            db,
            conversation_id=conversation_id,
            user_id=current_user.id,
            action_key=action_key,
            payload=action_in.inputs,
            client_msg_id=action_in.client_msg_id,
        )
    except NegotiationError as exc:
        raise _as_http_error(exc)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    conversation_id: int,
    message_in: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Free-text message; refused in negotiation conversations."""
    try:
        return negotiation.post_text_message(
            db,
            conversation_id=conversation_id,
            user_id=current_user.id,
            body=message_in.body,
            client_msg_id=message_in.client_msg_id,
        )
    except NegotiationError as exc:
        raise _as_http_error(exc)
