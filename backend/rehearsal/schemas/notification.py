"""
Pydantic schemas for invite/remind dispatch.
"""

from pydantic import BaseModel, Field


class InviteRequest(BaseModel):
    capability_id: int
    user_ids: list[int] = Field(..., min_length=1)


class RemindRequest(BaseModel):
    message: str = Field(default="", max_length=1600)


class SkippedRecipient(BaseModel):
    user_id: int
    reason: str


class DispatchResponse(BaseModel):
    sent_count: int
    skipped: list[SkippedRecipient]


class ReminderPreviewResponse(BaseModel):
    message: str
    recipient_count: int
