"""
Models package.
Exposes the Flask-SQLAlchemy handle and every mapped model.
"""

from flask_sqlalchemy import SQLAlchemy

from .base import Base

db = SQLAlchemy(model_class=Base)

from .user import User  # noqa: E402
from .project import Project  # noqa: E402
from .task import Task  # noqa: E402

__all__ = ["db", "Base", "User", "Project", "Task"]
