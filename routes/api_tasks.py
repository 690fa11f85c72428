"""
Tasks API Routes
REST endpoints for individual tasks. Creation and reordering live under
/api/projects/<id>/tasks because both need the owning project.
"""

import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from services import task_service
from utils.etag_helper import with_etag
from utils.validation import validate_task_content

logger = logging.getLogger(__name__)

api_tasks_bp = Blueprint('api_tasks', __name__, url_prefix='/api/tasks')


@api_tasks_bp.route('/', methods=['GET'])
@with_etag
@login_required
def list_tasks():
    """Every task of the current user, by project position then task position."""
    tasks = task_service.list_user_tasks(current_user.id)
    return jsonify({
        'success': True,
        'tasks': [t.to_dict() for t in tasks],
    })


@api_tasks_bp.route('/<int:task_id>', methods=['GET'])
@login_required
def get_task(task_id):
    task = task_service.get_owned_task(task_id, current_user.id)
    return jsonify({'success': True, 'task': task.to_dict()})


@api_tasks_bp.route('/<int:task_id>', methods=['PATCH'])
@login_required
def update_task(task_id):
    """Update ``content`` and/or ``is_completed``."""
    task = task_service.get_owned_task(task_id, current_user.id)
    data = request.get_json(silent=True) or {}

    content = None
    if 'content' in data:
        error = validate_task_content(data['content'])
        if error:
            return jsonify({'success': False, 'message': error}), 400
        content = data['content']

    is_completed = None
    if 'is_completed' in data:
        if not isinstance(data['is_completed'], bool):
            return jsonify({'success': False, 'message': 'is_completed must be a boolean'}), 400
        is_completed = data['is_completed']

    task = task_service.update_task(task, content=content, is_completed=is_completed)
    return jsonify({'success': True, 'task': task.to_dict()})


@api_tasks_bp.route('/<int:task_id>/toggle', methods=['POST'])
@login_required
def toggle_task(task_id):
    task = task_service.get_owned_task(task_id, current_user.id)
    task = task_service.toggle_task(task)
    return jsonify({'success': True, 'task': task.to_dict()})


@api_tasks_bp.route('/<int:task_id>', methods=['DELETE'])
@login_required
def delete_task(task_id):
    """Delete a task. Remaining tasks keep their positions."""
    task = task_service.get_owned_task(task_id, current_user.id)
    task_service.delete_task(task)
    return jsonify({'success': True})
