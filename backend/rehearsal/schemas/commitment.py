"""
Pydantic schemas for RSVP (commitment) requests and responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from rehearsal.schemas.capability import CapabilityResponse
from rehearsal.schemas.user import UserSummary


class CommitmentCreate(BaseModel):
    user_id: Optional[int] = None  # defaults to the caller
    capability_ids: list[int] = Field(default_factory=list)


class CommitmentResponse(BaseModel):
    id: int
    session_id: int
    user_id: int
    user: UserSummary
    capabilities: list[CapabilityResponse]
    created_at: datetime

    model_config = {"from_attributes": True}


class CommitmentCancelResponse(BaseModel):
    message: str
    session_id: int
    user_id: int
