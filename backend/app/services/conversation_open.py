from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.config import settings
from .workflow_types import NegotiationNode

NEGOTIATION = "negotiation"


@dataclass(frozen=True)
class WorkflowInitState:
    workflow_key: str
    current_node_key: str
    round: int
    max_rounds: int
    locked: bool
    context: dict[str, Any] = field(default_factory=dict)


def should_return_existing(existing_conversation: Optional[Any]) -> bool:
    """True when an (entity, type) lookup already found a conversation."""
    return existing_conversation is not None


def build_initial_workflow_state(
    conversation_type: str,
    max_rounds: Optional[int] = None,
) -> Optional[WorkflowInitState]:
    """Starting state for a new conversation's workflow.

    Only negotiations run a workflow; other conversation types get ``None``.
    The awaiting user is left for the caller to assign.
    """
    if conversation_type != NEGOTIATION:
        return None
    return WorkflowInitState(
        workflow_key=settings.NEGOTIATION_WORKFLOW_KEY,
        current_node_key=NegotiationNode.WAITING_FIRST_MOVE.value,
        round=0,
        max_rounds=settings.NEGOTIATION_MAX_ROUNDS if max_rounds is None else max_rounds,
        locked=False,
        context={},
    )
