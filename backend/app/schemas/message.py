from typing import Optional, Any
from datetime import datetime
from pydantic import BaseModel, field_validator


class MessageCreate(BaseModel):
    body: str
    client_msg_id: str | None = None

    @field_validator("body")
    @classmethod
    def body_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message must include a body")
        return v


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int | None = None
    body: str | None = None
    message_type: str
    payload: dict[str, Any] = {}
    client_msg_id: str | None = None
    workflow_node_key: str | None = None
    action_key: str | None = None
    round: int | None = None
    created_at: Optional[datetime] = None

    @field_validator("payload", mode="before")
    @classmethod
    def default_payload(cls, v):
        return v or {}

    model_config = {"from_attributes": True}
