"""
Project Service - CRUD glue for a user's ordered project list.
Every position change goes through project_collection.
"""

import logging
from typing import List, Optional, Sequence

from models import Project
from models.project import PROJECT_TYPES
from services.errors import PermissionDenied
from services.ordered_collection import project_collection
from services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def list_projects(user_id: int) -> List[Project]:
    return project_collection.list(user_id)


def get_owned_project(project_id: int, user_id: int) -> Project:
    """
    Fetch a project and check it belongs to ``user_id``.

    Raises:
        NotFoundError: no such project
        PermissionDenied: project owned by someone else
    """
    project = project_collection.get(project_id)
    if project.user_id != user_id:
        raise PermissionDenied('Forbidden')
    return project


def create_project(
    user_id: int,
    name: str,
    project_type: str = "project",
    goal_description: Optional[str] = None,
    position: Optional[int] = None,
    after_id: Optional[int] = None,
) -> Project:
    """Create a project at ``position``, after ``after_id``, or at the end."""
    if project_type not in PROJECT_TYPES:
        raise ValueError(f"Unknown project type {project_type!r}")

    return project_collection.place(
        user_id,
        position=position,
        after_member_id=after_id,
        name=name,
        type=project_type,
        goal_description=goal_description if project_type == "goal" else None,
    )


def update_project(project: Project, name: Optional[str] = None, goal_description: Optional[str] = None) -> Project:
    """Rename a project and, for goals, update the goal description."""
    with unit_of_work():
        if name is not None:
            project.name = name
        if goal_description is not None and project.is_goal:
            project.goal_description = goal_description
    logger.info(f"[PROJECTS] Updated project {project.id}")
    return project


def reorder_projects(user_id: int, project_ids: Sequence[int]) -> List[Project]:
    project_collection.reorder(user_id, project_ids)
    return project_collection.list(user_id)


def delete_project(project: Project) -> None:
    """Delete a project; its tasks go with it."""
    project_collection.delete(project.id, scope_id=project.user_id)

