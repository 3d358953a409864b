from rehearsal.schemas.capability import CapabilityCreate, CapabilityUpdate, CapabilityResponse, CapabilityIdList
from rehearsal.schemas.user import UserSummary, CandidateResponse, UserProfileResponse
from rehearsal.schemas.song import SongRequirementsResponse
from rehearsal.schemas.commitment import CommitmentCreate, CommitmentResponse, CommitmentCancelResponse
from rehearsal.schemas.session import (
    SessionCreate, SessionUpdate, SessionResponse, SessionSummary, RecordingCreate, RecordingResponse,
)
from rehearsal.schemas.coverage import SessionCoverageResponse
from rehearsal.schemas.notification import InviteRequest, RemindRequest, DispatchResponse, ReminderPreviewResponse

__all__ = [
    "CapabilityCreate", "CapabilityUpdate", "CapabilityResponse", "CapabilityIdList",
    "UserSummary", "CandidateResponse", "UserProfileResponse",
    "SongRequirementsResponse",
    "CommitmentCreate", "CommitmentResponse", "CommitmentCancelResponse",
    "SessionCreate", "SessionUpdate", "SessionResponse", "SessionSummary",
    "RecordingCreate", "RecordingResponse",
    "SessionCoverageResponse",
    "InviteRequest", "RemindRequest", "DispatchResponse", "ReminderPreviewResponse",
]
