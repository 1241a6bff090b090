from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel

from .workflow import WorkflowInstanceResponse


class ConversationResponse(BaseModel):
    id: int
    subject: str | None = None
    entity_type: str | None = None
    entity_id: int | None = None
    conversation_type: str
    status: str
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConversationListItem(ConversationResponse):
    # Server-computed label for the inbox list
    preview_label: str = ""


class ConversationDetailResponse(ConversationResponse):
    participant_ids: List[int] = []
    workflow_instance: WorkflowInstanceResponse | None = None
