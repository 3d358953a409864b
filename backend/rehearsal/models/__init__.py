from rehearsal.models.capability import (
    Capability,
    commitment_capabilities,
    song_capabilities,
    user_capabilities,
)
from rehearsal.models.user import User
from rehearsal.models.song import Song
from rehearsal.models.session import Commitment, RehearsalSession, SessionRecording, SessionSong

__all__ = [
    "Capability", "User", "Song",
    "RehearsalSession", "SessionSong", "SessionRecording", "Commitment",
    "user_capabilities", "song_capabilities", "commitment_capabilities",
]
