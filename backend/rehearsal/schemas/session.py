"""
Pydantic schemas for rehearsal sessions, their setlists and recordings.
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field

from rehearsal.schemas.capability import CapabilityResponse
from rehearsal.schemas.commitment import CommitmentResponse


class SessionSongIn(BaseModel):
    song_name: str = Field(..., min_length=1, max_length=255)
    song_url: Optional[str] = Field(None, max_length=1000)


class SessionCreate(BaseModel):
    date: dt.date
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    songs: list[SessionSongIn] = Field(default_factory=list)


class SessionUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    songs: Optional[list[SessionSongIn]] = None


class SessionSongResponse(BaseModel):
    id: int
    song_name: str
    song_url: Optional[str] = None
    position: int
    song_artist: Optional[str] = None
    capabilities: list[CapabilityResponse] = []


class RecordingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1000)


class RecordingResponse(BaseModel):
    id: int
    session_id: int
    title: str
    url: str

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    songs: list[SessionSongResponse]
    recordings: list[RecordingResponse] = []
    commitments: list[CommitmentResponse] = []
    commitments_count: int = 0


class SessionSummary(BaseModel):
    id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time

    model_config = {"from_attributes": True}
