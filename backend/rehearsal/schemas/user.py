"""
Pydantic schemas for member summaries.
"""

from typing import Optional
from pydantic import BaseModel

from rehearsal.schemas.capability import CapabilityResponse


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class CandidateResponse(UserSummary):
    phone: Optional[str] = None


class UserProfileResponse(UserSummary):
    capabilities: list[CapabilityResponse] = []
