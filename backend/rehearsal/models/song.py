"""
Song catalog entry. Requirements are a property of the song and are
reused by every session that plays it.
"""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from rehearsal.db.base import Base, TimestampMixin
from rehearsal.models.capability import song_capabilities


class Song(Base, TimestampMixin):
    __tablename__ = "songs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    artist = Column(String(255), nullable=True)
    key = Column(String(20), nullable=True)
    tempo = Column(String(20), nullable=True)
    resource_url = Column(String(1000), nullable=True)

    required_capabilities = relationship(
        "Capability",
        secondary=song_capabilities,
        lazy="selectin",
        order_by="Capability.name",
    )

    def __repr__(self) -> str:
        return f"<Song(id={self.id}, title={self.title})>"
