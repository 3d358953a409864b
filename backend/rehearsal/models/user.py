"""
Band member as mirrored from the identity provider, plus the capability
profile used for RSVP validation and candidate matching.
"""

from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship

from rehearsal.db.base import Base, TimestampMixin
from rehearsal.models.capability import user_capabilities


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(32), nullable=True)
    user_type = Column(String(20), nullable=False, default="user")  # user, admin
    is_active = Column(Boolean, default=True, nullable=False)

    capabilities = relationship(
        "Capability",
        secondary=user_capabilities,
        lazy="selectin",
        order_by="Capability.name",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name})>"
