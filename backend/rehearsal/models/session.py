"""
Rehearsal session with its setlist snapshot, recordings and commitments.

Key design decisions:
- Setlist entries store the song's display name and url, not a foreign key,
  so a session keeps its history when the catalog song is edited or removed.
- Unique constraint on (session_id, user_id) keeps at most one commitment
  per member per session; re-RSVP updates the existing row.
- Children are removed by ON DELETE CASCADE when a session is deleted.
"""

from sqlalchemy import (
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from rehearsal.db.base import Base, TimestampMixin
from rehearsal.models.capability import commitment_capabilities


class RehearsalSession(Base, TimestampMixin):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    songs = relationship(
        "SessionSong",
        lazy="selectin",
        order_by="SessionSong.position",
        passive_deletes=True,
    )
    recordings = relationship(
        "SessionRecording",
        lazy="selectin",
        order_by="SessionRecording.id",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_sessions_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<RehearsalSession(id={self.id}, date={self.date})>"


class SessionSong(Base):
    __tablename__ = "session_songs"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    song_name = Column(String(255), nullable=False)
    song_url = Column(String(1000), nullable=True)
    position = Column(Integer, nullable=False, default=0)


class SessionRecording(Base, TimestampMixin):
    __tablename__ = "session_recordings"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    url = Column(String(1000), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class Commitment(Base, TimestampMixin):
    __tablename__ = "session_commitments"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    user = relationship("User", lazy="selectin")
    capabilities = relationship(
        "Capability",
        secondary=commitment_capabilities,
        lazy="selectin",
        order_by="Capability.name",
    )

    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_session_user_commitment"),
    )

    def __repr__(self) -> str:
        return f"<Commitment(id={self.id}, session={self.session_id}, user={self.user_id})>"
