from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class EventCreateModel(BaseModel):
    """Schema for creating a new Event (API Input)."""

    user_id: str
    type: str = Field(..., description="Funnel step, e.g. 'signup', 'purchase'")
    # The server sets the timestamp when the client leaves it out
    timestamp: Optional[datetime] = None

    properties: Dict = Field(default_factory=dict, description="Flexible JSON object.")


class EventResponseModel(BaseModel):
    event_id: str
    user_id: str
    type: str
