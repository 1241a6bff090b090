from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from .. import models


def get_conversation(db: Session, conversation_id: int) -> Optional[models.Conversation]:
    return (
        db.query(models.Conversation)
        .options(
            selectinload(models.Conversation.participants),
            selectinload(models.Conversation.workflow_instance),
        )
        .filter(models.Conversation.id == conversation_id)
        .first()
    )


def get_conversation_for_entity(
    db: Session,
    entity_type: str,
    entity_id: int,
    conversation_type: str,
) -> Optional[models.Conversation]:
    return (
        db.query(models.Conversation)
        .filter(
            models.Conversation.entity_type == entity_type,
            models.Conversation.entity_id == entity_id,
            models.Conversation.conversation_type == conversation_type,
        )
        .first()
    )


def get_conversations_for_user(
    db: Session, user_id: int, skip: int = 0, limit: int = 100
) -> List[models.Conversation]:
    """Conversations the user takes part in, most recently active first."""
    return (
        db.query(models.Conversation)
        .join(
            models.ConversationParticipant,
            models.ConversationParticipant.conversation_id == models.Conversation.id,
        )
        .filter(models.ConversationParticipant.user_id == user_id)
        .order_by(models.Conversation.last_message_at.desc(), models.Conversation.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_conversation(
    db: Session,
    entity_type: Optional[str],
    entity_id: Optional[int],
    conversation_type: str,
    subject: Optional[str],
    participant_ids: Iterable[int],
) -> models.Conversation:
    """Insert a conversation and its participant rows without committing."""
    convo = models.Conversation(
        entity_type=entity_type,
        entity_id=entity_id,
        conversation_type=conversation_type,
        subject=subject,
        status="open",
        last_message_at=datetime.utcnow(),
    )
    db.add(convo)
    db.flush()
    seen: set[int] = set()
    for user_id in participant_ids:
        if user_id in seen:
            continue
        seen.add(user_id)
        db.add(models.ConversationParticipant(conversation_id=convo.id, user_id=user_id))
    db.flush()
    return convo


def get_workflow_instance(
    db: Session, conversation_id: int, for_update: bool = False
) -> Optional[models.ConversationWorkflowInstance]:
    query = db.query(models.ConversationWorkflowInstance).filter(
        models.ConversationWorkflowInstance.conversation_id == conversation_id
    )
    if for_update:
        # Ignored by SQLite; Postgres holds the row until commit. The row may
        # already sit in the identity map, so reload it under the lock.
        query = query.with_for_update().populate_existing()
    return query.first()


def touch_conversation(convo: models.Conversation, when: Optional[datetime] = None) -> None:
    convo.last_message_at = when or datetime.utcnow()
