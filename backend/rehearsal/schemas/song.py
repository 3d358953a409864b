"""
Pydantic schemas for song requirement endpoints.
"""

from pydantic import BaseModel

from rehearsal.schemas.capability import CapabilityResponse


class SongRequirementsResponse(BaseModel):
    song_id: int
    title: str
    capabilities: list[CapabilityResponse]
