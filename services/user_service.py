"""
User Service - registration, authentication and per-user statistics.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import func, select
from werkzeug.security import check_password_hash, generate_password_hash

from models import db, User, Project, Task
from models.user import USER_TIERS
from services.errors import ServiceError
from services.ordered_collection import project_collection
from services.unit_of_work import unit_of_work
from utils.auth import validate_email, validate_password

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "My First Project"
LOCAL_USER_PASSWORD_HASH = "local-user-no-password"


class RegistrationError(ServiceError):
    """Invalid or duplicate registration data."""

    status_code = 400


class DuplicateEmailError(RegistrationError):
    status_code = 409


def find_user_by_id(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


def find_user_by_email(email: str) -> Optional[User]:
    stmt = select(User).where(User.email == email.strip().lower())
    return db.session.execute(stmt).scalar_one_or_none()


def register_user(email: str, password: str, tier: str = "free") -> User:
    """
    Create a user together with a default project.

    Both rows are written in one transaction.

    Raises:
        RegistrationError: email, password or tier fails validation
        DuplicateEmailError: email already registered
    """
    email = (email or "").strip().lower()
    error = validate_email(email) or validate_password(password or "")
    if error:
        raise RegistrationError(error)
    if tier not in USER_TIERS:
        raise RegistrationError(f"Tier must be one of {', '.join(USER_TIERS)}")

    if find_user_by_email(email) is not None:
        raise DuplicateEmailError('User with this email already exists')

    with unit_of_work() as session:
        user = User(email=email, password_hash=generate_password_hash(password), tier=tier)
        session.add(user)
        session.flush()
        project_collection.append(user.id, name=DEFAULT_PROJECT_NAME, type="project")

    logger.info(f"[AUTH] Registered user {user.id}")
    return user


def authenticate(email: str, password: str) -> Optional[User]:
    """Return the user when the credentials match, otherwise None."""
    user = find_user_by_email(email or "")
    if user is None or not check_password_hash(user.password_hash, password or ""):
        logger.info("[AUTH] Failed login attempt")
        return None
    return user


def get_or_create_local_user(email: str) -> User:
    """Default user for local single-user mode; created on first use."""
    user = find_user_by_email(email)
    if user is not None:
        return user

    with unit_of_work() as session:
        user = User(email=email, password_hash=LOCAL_USER_PASSWORD_HASH)
        session.add(user)

    logger.info(f"[AUTH] Created default local user {email}")
    return user


def get_user_stats(user_id: int) -> Dict[str, int]:
    """Project, task and completed task counts for a user."""
    task_count = db.session.execute(
        select(func.count(Task.id)).join(Project, Task.project_id == Project.id).where(Project.user_id == user_id)
    ).scalar() or 0
    completed_count = db.session.execute(
        select(func.count(Task.id))
        .join(Project, Task.project_id == Project.id)
        .where(Project.user_id == user_id, Task.is_completed.is_(True))
    ).scalar() or 0

    return {
        'project_count': project_collection.count(user_id),
        'task_count': task_count,
        'completed_task_count': completed_count,
    }
