from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class Conversation(BaseModel):
    __tablename__ = "conversations"
    __table_args__ = (
        # One conversation per (entity, type); concurrent opens collide here
        UniqueConstraint(
            "entity_type",
            "entity_id",
            "conversation_type",
            name="uq_conversations_entity_type",
        ),
        Index("ix_conversations_last_message_at", "last_message_at"),
    )

    id                = Column(Integer, primary_key=True, index=True)
    subject           = Column(String, nullable=True)
    entity_type       = Column(String, nullable=True)
    entity_id         = Column(Integer, nullable=True)
    conversation_type = Column(String, nullable=False, default="direct")
    status            = Column(String, nullable=False, default="open")
    last_message_at   = Column(DateTime, nullable=True, default=datetime.utcnow)

    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )
    workflow_instance = relationship(
        "ConversationWorkflowInstance",
        back_populates="conversation",
        uselist=False,
        cascade="all, delete-orphan",
    )
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.id",
    )

    @property
    def participant_ids(self) -> list[int]:
        return [p.user_id for p in self.participants]


class ConversationParticipant(BaseModel):
    __tablename__ = "conversation_participants"

    conversation_id = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    joined_at = Column(DateTime, default=datetime.utcnow)

    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User")
