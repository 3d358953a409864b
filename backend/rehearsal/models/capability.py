"""
Capability catalog: the instruments and skills a member can contribute.

Names are stored trimmed and lower-cased so the unique constraint is
effectively case-insensitive. Every association table references
capabilities with ON DELETE RESTRICT: a capability in use cannot be removed.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Table

from rehearsal.db.base import Base, TimestampMixin

user_capabilities = Table(
    "user_capabilities",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("capability_id", ForeignKey("capabilities.id", ondelete="RESTRICT"), primary_key=True, index=True),
)

song_capabilities = Table(
    "song_capabilities",
    Base.metadata,
    Column("song_id", ForeignKey("songs.id", ondelete="CASCADE"), primary_key=True),
    Column("capability_id", ForeignKey("capabilities.id", ondelete="RESTRICT"), primary_key=True, index=True),
)

commitment_capabilities = Table(
    "commitment_capabilities",
    Base.metadata,
    Column("commitment_id", ForeignKey("session_commitments.id", ondelete="CASCADE"), primary_key=True),
    Column("capability_id", ForeignKey("capabilities.id", ondelete="RESTRICT"), primary_key=True, index=True),
)


class Capability(Base, TimestampMixin):
    __tablename__ = "capabilities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    icon = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Capability(id={self.id}, name={self.name})>"
