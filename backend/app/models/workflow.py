from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from .base import BaseModel
from ..services.workflow_types import WorkflowInstanceState


class ConversationWorkflowInstance(BaseModel):
    """Persisted negotiation state for a conversation.

    Rows are never deleted so the negotiation stays auditable. ``version`` is
    the SQLAlchemy optimistic-lock counter: a flush against a stale version
    raises ``StaleDataError`` instead of overwriting another transition.
    """

    __tablename__ = "conversation_workflow_instances"

    conversation_id  = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True
    )
    workflow_key     = Column(String, nullable=False, default="booking_negotiation_v1")
    current_node_key = Column(String, nullable=False)
    awaiting_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    round            = Column(Integer, nullable=False, default=0)
    max_rounds       = Column(Integer, nullable=False, default=3)
    deadline_at      = Column(DateTime, nullable=True)
    locked           = Column(Boolean, nullable=False, default=False)
    context          = Column(JSON, nullable=False, default=dict)
    version          = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    conversation = relationship("Conversation", back_populates="workflow_instance")
    awaiting_user = relationship("User")

    def to_state(self) -> WorkflowInstanceState:
        """Snapshot the row as the plain value consumed by the workflow engine."""
        return WorkflowInstanceState(
            current_node_key=self.current_node_key,
            awaiting_user_id=self.awaiting_user_id,
            round=self.round or 0,
            max_rounds=self.max_rounds,
            locked=bool(self.locked),
            context=dict(self.context or {}),
        )
