"""
Pydantic schemas for the per-song coverage report.
"""

from typing import Optional
from pydantic import BaseModel

from rehearsal.schemas.capability import CapabilityResponse


class SongCoverageResponse(BaseModel):
    position: int
    song_name: str
    song_url: Optional[str] = None
    required: list[CapabilityResponse]
    gap: list[CapabilityResponse]


class SessionCoverageResponse(BaseModel):
    session_id: int
    covered: list[CapabilityResponse]
    songs: list[SongCoverageResponse]
    fully_staffed: bool
