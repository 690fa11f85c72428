"""
Task Model for project task lists
SQLAlchemy 2.0-safe model for tasks kept in a user-defined order inside a project.
"""

from typing import Optional, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, DateTime, Text, Boolean, ForeignKey, func, UniqueConstraint
from .base import Base

# Forward reference for type checking
if TYPE_CHECKING:
    from .project import Project


class Task(Base):
    """
    Task scoped by ``project_id``.

    ``position`` defines the order inside the project and is unique per
    project. Only services.ordered_collection writes it.
    """
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    # Task content
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    how_explanation: Mapped[Optional[str]] = mapped_column(Text)

    # Display order within the project (lower = earlier)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    project: Mapped["Project"] = relationship(back_populates="tasks")

    __table_args__ = (
        UniqueConstraint('project_id', 'position', name='uq_tasks_project_position'),
    )

    def __repr__(self):
        return f'<Task {self.id}: {self.content[:30]!r} @{self.position}>'

    def complete_task(self):
        """Mark task as completed."""
        self.is_completed = True

    def reopen_task(self):
        """Mark task as not completed."""
        self.is_completed = False

    def toggle_completion(self):
        """Flip the completion flag."""
        self.is_completed = not self.is_completed

    def to_dict(self):
        """Convert task to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'project_id': self.project_id,
            'content': self.content,
            'is_completed': self.is_completed,
            'position': self.position,
            'how_explanation': self.how_explanation,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
