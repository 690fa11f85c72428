"""
Project Model - ordered member of a user's project list.
A project of type "goal" additionally carries a goal description.
"""

from typing import Optional, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, func, UniqueConstraint
from .base import Base

if TYPE_CHECKING:
    from .user import User
    from .task import Task


PROJECT_TYPES = ("project", "goal")


class Project(Base):
    """
    Project scoped by ``user_id``.

    ``position`` is owned by the ordered collection engine
    (services.ordered_collection); nothing else may write it.
    """
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(16), default="project", nullable=False)  # project, goal
    goal_description: Mapped[Optional[str]] = mapped_column(Text)
    goal_step_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Display order within the user's projects (lower = earlier)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    user: Mapped["User"] = relationship(back_populates="projects")
    tasks: Mapped[list["Task"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Task.position",
    )

    __table_args__ = (
        UniqueConstraint('user_id', 'position', name='uq_projects_user_position'),
    )

    def __repr__(self):
        return f'<Project {self.id}: {self.name} @{self.position}>'

    @property
    def is_goal(self) -> bool:
        return self.type == "goal"

    def to_dict(self):
        """Convert project to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'type': self.type,
            'position': self.position,
            'goal_description': self.goal_description,
            'goal_step_count': self.goal_step_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
