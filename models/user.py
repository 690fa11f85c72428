"""
User Model - account owning an ordered collection of projects.
"""

from typing import TYPE_CHECKING
from datetime import datetime
from flask_login import UserMixin
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, func
from .base import Base

if TYPE_CHECKING:
    from .project import Project


USER_TIERS = ("free", "standard", "ultimate")


class User(UserMixin, Base):
    """
    Application user.

    Projects belong to exactly one user and are ordered per user by
    ``Project.position``. Deleting a user cascades to projects and tasks.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    tier: Mapped[str] = mapped_column(String(16), default="free", nullable=False)  # free, standard, ultimate

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    projects: Mapped[list["Project"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Project.position",
    )

    def __repr__(self):
        return f'<User {self.id}: {self.email}>'

    def to_dict(self):
        """Public representation; never includes the password hash."""
        return {
            'id': self.id,
            'email': self.email,
            'tier': self.tier,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
