"""
Pydantic schemas for the capability catalog and user capability profiles.
"""

from typing import Optional
from pydantic import BaseModel, Field


class CapabilityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(default="🎸", max_length=255)


class CapabilityUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: Optional[str] = Field(None, max_length=255)


class CapabilityResponse(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None

    model_config = {"from_attributes": True}


class CapabilityIdList(BaseModel):
    capability_ids: list[int] = Field(default_factory=list)
