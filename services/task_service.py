"""
Task Service - CRUD glue for the ordered task list of a project.
Every position change goes through task_collection.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select

from models import db, Project, Task
from services.errors import PermissionDenied
from services.ordered_collection import project_collection, task_collection
from services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def list_tasks(project_id: int) -> List[Task]:
    return task_collection.list(project_id)


def list_user_tasks(user_id: int) -> List[Task]:
    """All tasks of a user, ordered by project position, then task position."""
    stmt = (
        select(Task)
        .join(Project, Task.project_id == Project.id)
        .where(Project.user_id == user_id)
        .order_by(Project.position.asc(), Task.position.asc(), Task.id.asc())
    )
    return list(db.session.execute(stmt).scalars().all())


def get_owned_task(task_id: int, user_id: int) -> Task:
    """
    Fetch a task and check its project belongs to ``user_id``.

    Raises:
        NotFoundError: no such task
        PermissionDenied: task lives in another user's project
    """
    task = task_collection.get(task_id)
    project = project_collection.get(task.project_id)
    if project.user_id != user_id:
        raise PermissionDenied('Forbidden')
    return task


def create_task(
    project_id: int,
    content: str,
    position: Optional[int] = None,
    after_id: Optional[int] = None,
) -> Task:
    """Create a task at ``position``, after ``after_id``, or at the end."""
    return task_collection.place(project_id, position=position, after_member_id=after_id, content=content)


def update_task(task: Task, content: Optional[str] = None, is_completed: Optional[bool] = None) -> Task:
    """Partial update of the payload fields; position is not touched."""
    with unit_of_work():
        if content is not None:
            task.content = content
        if is_completed is True:
            task.complete_task()
        elif is_completed is False:
            task.reopen_task()
    return task


def toggle_task(task: Task) -> Task:
    with unit_of_work():
        task.toggle_completion()
    logger.info(f"[TASKS] Task {task.id} completion set to {task.is_completed}")
    return task


def reorder_tasks(project_id: int, task_ids: Sequence[int]) -> List[Task]:
    task_collection.reorder(project_id, task_ids)
    return task_collection.list(project_id)


def delete_task(task: Task) -> None:
    task_collection.delete(task.id, scope_id=task.project_id)
