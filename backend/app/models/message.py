from sqlalchemy import (
    Column,
    Integer,
    Text,
    String,
    ForeignKey,
    UniqueConstraint,
    Index,
    JSON,
)
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel


class MessageType(str, enum.Enum):
    """Type of message being stored."""

    TEXT = "text"
    # Typed negotiation move; body is empty and the move lives in payload
    ACTION = "action"
    SYSTEM = "system"


class Message(BaseModel):
    __tablename__ = "messages"
    __table_args__ = (
        # A client retry with the same id must not append a second message
        UniqueConstraint(
            "conversation_id",
            "sender_id",
            "client_msg_id",
            name="uq_messages_conversation_sender_client_msg_id",
        ),
        Index(
            "ix_messages_conversation_id_id",
            "conversation_id",
            "id",
        ),
    )

    id                = Column(Integer, primary_key=True, index=True)
    conversation_id   = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    # NULL for platform-generated system messages
    sender_id         = Column(Integer, ForeignKey("users.id"), nullable=True)
    body              = Column(Text, nullable=True)
    message_type      = Column(
        String, nullable=False, default=MessageType.TEXT.value
    )
    payload           = Column(JSON, nullable=False, default=dict)
    client_msg_id     = Column(String, nullable=True)
    workflow_node_key = Column(String, nullable=True)
    action_key        = Column(String, nullable=True)
    round             = Column(Integer, nullable=True)

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User")
