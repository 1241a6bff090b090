from .message import MessageCreate, MessageResponse
from .workflow import WorkflowActionRequest, WorkflowInstanceResponse
from .conversation import (
    ConversationResponse,
    ConversationListItem,
    ConversationDetailResponse,
)
