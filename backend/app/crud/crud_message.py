from typing import Any, List, Optional

from sqlalchemy.orm import Session

from .. import models


def create_message(
    db: Session,
    conversation_id: int,
    sender_id: Optional[int],
    body: Optional[str] = None,
    message_type: models.MessageType = models.MessageType.TEXT,
    payload: Optional[dict[str, Any]] = None,
    client_msg_id: Optional[str] = None,
    workflow_node_key: Optional[str] = None,
    action_key: Optional[str] = None,
    round: Optional[int] = None,
) -> models.Message:
    """Append a message to a conversation without committing."""
    db_msg = models.Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        body=body,
        message_type=models.MessageType(message_type).value,
        payload=dict(payload or {}),
        client_msg_id=client_msg_id,
        workflow_node_key=workflow_node_key,
        action_key=action_key,
        round=round,
    )
    db.add(db_msg)
    db.flush()
    return db_msg


def get_message_by_client_id(
    db: Session, conversation_id: int, sender_id: int, client_msg_id: str
) -> Optional[models.Message]:
    """A sender's earlier message with this ``client_msg_id``; ids are per sender."""
    return (
        db.query(models.Message)
        .filter(
            models.Message.conversation_id == conversation_id,
            models.Message.sender_id == sender_id,
            models.Message.client_msg_id == client_msg_id,
        )
        .first()
    )


def get_recent_messages(
    db: Session, conversation_id: int, limit: int = 50
) -> List[models.Message]:
    """Newest ``limit`` messages, newest first (id order follows insert order)."""
    return (
        db.query(models.Message)
        .filter(models.Message.conversation_id == conversation_id)
        .order_by(models.Message.id.desc())
        .limit(limit)
        .all()
    )


def get_last_message(db: Session, conversation_id: int) -> Optional[models.Message]:
    return (
        db.query(models.Message)
        .filter(models.Message.conversation_id == conversation_id)
        .order_by(models.Message.id.desc())
        .first()
    )
