from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, TypeVar

from ..models.message import MessageType


FREE_TEXT_REJECTED = "Free text not allowed in this mode. Use actions."

_M = TypeVar("_M")


def _created_at(message: Any) -> datetime:
    if isinstance(message, dict):
        return message["created_at"]
    return message.created_at


def sort_messages_chronologically(messages: Iterable[_M]) -> List[_M]:
    """Return a new list ordered oldest first by ``created_at``.

    ``sorted`` is stable, so rows sharing a timestamp keep their input order
    (the API feeds rows in id order).
    """
    return sorted(messages, key=_created_at)


def is_participant(user_id: int, participant_user_ids: Iterable[int]) -> bool:
    return user_id in set(participant_user_ids)


def check_free_text_allowed(conversation_type: Optional[str]) -> Optional[str]:
    """Negotiations are action-only; every other conversation accepts text."""
    if conversation_type == "negotiation":
        return FREE_TEXT_REJECTED
    return None


def build_system_message(conversation_id: int, body: str) -> Dict[str, Any]:
    """Insert-ready fields for a platform-generated message."""
    return {
        "conversation_id": conversation_id,
        "sender_id": None,
        "body": body,
        "message_type": MessageType.SYSTEM.value,
    }


def preview_label_for_message(last_message: Optional[Any]) -> str:
    """Return a concise preview label for a conversation list.

    - ACTION messages → the move, e.g. "Proposed change (round 2)"
    - SYSTEM / TEXT messages → truncated body
    """
    if last_message is None:
        return ""
    if last_message.message_type == MessageType.ACTION.value:
        action = last_message.action_key or ""
        if action == "PROPOSE_CHANGE":
            return f"Proposed change (round {(last_message.round or 0) + 1})"
        if action == "ACCEPT":
            return "Offer accepted"
        if action == "DECLINE":
            return "Offer declined"
        return action.replace("_", " ").capitalize()
    text = (last_message.body or "").strip().replace("\n", " ")
    return text[:80]
