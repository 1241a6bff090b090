"""Value types shared by the negotiation validator and transition engine.

Nothing here touches the database; ORM rows are converted with
``ConversationWorkflowInstance.to_state()`` before reaching the engine.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union


class NegotiationNode(str, enum.Enum):
    WAITING_FIRST_MOVE = "WAITING_FIRST_MOVE"
    AWAITING_ARTIST = "AWAITING_ARTIST"
    AWAITING_ORGANIZER = "AWAITING_ORGANIZER"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class WorkflowActionKey(str, enum.Enum):
    PROPOSE_CHANGE = "PROPOSE_CHANGE"
    ACCEPT = "ACCEPT"
    DECLINE = "DECLINE"


class WorkflowErrorKind(str, enum.Enum):
    LOCKED = "locked"
    TURN = "turn"
    INVALID_ACTION = "invalid_action"
    MAX_ROUNDS = "max_rounds"


@dataclass
class WorkflowInstanceState:
    current_node_key: str
    awaiting_user_id: Optional[int]
    round: int
    max_rounds: int
    locked: bool
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkflowAction:
    user_id: int
    action_key: Union[WorkflowActionKey, str]
    payload: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class ActionMessage:
    sender_id: int
    action_key: str
    payload: dict[str, Any]
    round: int
    workflow_node_key: str
    message_type: str = "action"


@dataclass(frozen=True)
class SystemMessage:
    body: str
    workflow_node_key: str
    sender_id: None = None
    message_type: str = "system"


@dataclass(frozen=True)
class WorkflowTransitionResult:
    next_node_key: str
    next_awaiting_user_id: Optional[int]
    new_round: int
    should_lock: bool
    booking_status_update: Optional[str]
    booking_offer_amount_update: Optional[Any]
    message: ActionMessage
    system_message: Optional[SystemMessage] = None


@dataclass(frozen=True)
class WorkflowError:
    error: str
    kind: WorkflowErrorKind


WorkflowActionResult = Union[WorkflowTransitionResult, WorkflowError]
