"""
Explicit role assignments.
"""

from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from sightings.kernel.models.base import Base, UTCDateTime, utcnow


class UserRoleAssignment(Base):
    """A role granted to a user id by a security admin."""

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    role: Mapped[str] = mapped_column(String(50), primary_key=True)
    assigned_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<UserRoleAssignment {self.user_id}:{self.role}>"
