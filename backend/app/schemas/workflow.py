import math
from decimal import Decimal
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class WorkflowActionRequest(BaseModel):
    """Body of ``POST /conversations/{id}/actions``.

    ``action_key`` stays a plain string here; the route maps it onto the
    closed action set and rejects anything else with ``Invalid action``.
    """

    action_key: str
    client_msg_id: str | None = None
    inputs: dict[str, Any] = Field(default_factory=dict)

    @field_validator("inputs", mode="before")
    @classmethod
    def inputs_object(cls, v):
        return v or {}

    @field_validator("inputs")
    @classmethod
    def offer_amount_numeric(cls, v: dict[str, Any]) -> dict[str, Any]:
        amount = v.get("offerAmount")
        if amount is None:
            return v
        if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
            raise ValueError("offerAmount must be a number")
        if not math.isfinite(amount):
            raise ValueError("offerAmount must be a finite number")
        return v


class WorkflowInstanceResponse(BaseModel):
    conversation_id: int
    workflow_key: str
    current_node_key: str
    awaiting_user_id: int | None = None
    round: int
    max_rounds: int
    deadline_at: Optional[datetime] = None
    locked: bool
    context: dict[str, Any] = {}

    model_config = {"from_attributes": True}
