"""Guards evaluated before a negotiation action is applied.

Each check returns ``None`` when it passes or a user-facing error string.
None of them raise.
"""

from __future__ import annotations

from typing import Optional, Union

from .workflow_types import WorkflowActionKey, WorkflowInstanceState


def parse_action_key(raw: object) -> Optional[WorkflowActionKey]:
    """Map a wire value onto the closed action set; unknown keys give ``None``."""
    if isinstance(raw, WorkflowActionKey):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return WorkflowActionKey(raw)
    except ValueError:
        return None


def validate_not_locked(instance: WorkflowInstanceState) -> Optional[str]:
    if instance.locked:
        return "Workflow is locked"
    return None


def validate_turn(instance: WorkflowInstanceState, user_id: int) -> Optional[str]:
    if user_id != instance.awaiting_user_id:
        return f"Not your turn. Awaiting user {instance.awaiting_user_id}"
    return None


def validate_action(action_key: Union[WorkflowActionKey, str]) -> Optional[str]:
    if parse_action_key(action_key) is None:
        return "Invalid action"
    return None


def validate_max_rounds(instance: WorkflowInstanceState) -> Optional[str]:
    """Reject a further proposal once the instance's own ceiling is reached."""
    if instance.round >= instance.max_rounds:
        return "Max rounds reached. Must Accept or Decline."
    return None
