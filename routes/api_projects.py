"""
Projects API Routes
REST endpoints for a user's ordered projects and the ordered tasks inside them.
"""

import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from services import project_service, task_service
from services.ordered_collection import task_collection
from utils.etag_helper import with_etag
from utils.validation import (
    parse_id_list,
    parse_optional_id,
    parse_optional_position,
    validate_project_name,
    validate_task_content,
)

logger = logging.getLogger(__name__)

api_projects_bp = Blueprint('api_projects', __name__, url_prefix='/api/projects')


def _bad_request(message):
    return jsonify({'success': False, 'message': message}), 400


@api_projects_bp.route('/', methods=['GET'])
@with_etag
@login_required
def list_projects():
    """All projects of the current user, in position order."""
    projects = project_service.list_projects(current_user.id)
    return jsonify({
        'success': True,
        'projects': [p.to_dict() for p in projects],
    })


@api_projects_bp.route('/', methods=['POST'])
@login_required
def create_project():
    """
    Create a project or goal.
    Placement: explicit ``position``, else ``after_id``, else appended at the end.
    """
    data = request.get_json(silent=True) or {}

    name = data.get('name')
    error = validate_project_name(name)
    if error:
        return _bad_request(error)

    project_type = data.get('type', 'project')
    if project_type not in ('project', 'goal'):
        return _bad_request('Type must be "project" or "goal"')

    goal_description = data.get('goal_description')
    if project_type == 'goal' and (not goal_description or not isinstance(goal_description, str)):
        return _bad_request('Goal description is required for goal type')

    position, error = parse_optional_position(data.get('position'))
    if error:
        return _bad_request(error)
    after_id, error = parse_optional_id(data.get('after_id'), 'after_id')
    if error:
        return _bad_request(error)

    project = project_service.create_project(
        current_user.id,
        name.strip(),
        project_type=project_type,
        goal_description=goal_description,
        position=position,
        after_id=after_id,
    )

    return jsonify({
        'success': True,
        'message': 'Project created successfully',
        'project': project.to_dict(),
    }), 201


@api_projects_bp.route('/reorder', methods=['POST'])
@login_required
def reorder_projects():
    """
    Apply a full ordering of the user's projects.
    Body: {"project_ids": [...]} naming every project exactly once.
    """
    data = request.get_json(silent=True) or {}
    project_ids, error = parse_id_list(data.get('project_ids'), 'project_ids')
    if error:
        return _bad_request(error)

    projects = project_service.reorder_projects(current_user.id, project_ids)

    return jsonify({
        'success': True,
        'message': f'Updated positions for {len(projects)} projects',
        'projects': [p.to_dict() for p in projects],
    })


@api_projects_bp.route('/<int:project_id>', methods=['GET'])
@login_required
def get_project(project_id):
    project = project_service.get_owned_project(project_id, current_user.id)
    data = project.to_dict()
    data['task_count'] = task_collection.count(project.id)
    return jsonify({'success': True, 'project': data})


@api_projects_bp.route('/<int:project_id>', methods=['PATCH'])
@login_required
def update_project(project_id):
    """Rename a project; goals also accept ``goal_description``."""
    project = project_service.get_owned_project(project_id, current_user.id)
    data = request.get_json(silent=True) or {}

    name = data.get('name')
    error = validate_project_name(name)
    if error:
        return _bad_request(error)

    goal_description = data.get('goal_description')
    if goal_description is not None and not isinstance(goal_description, str):
        return _bad_request('Goal description must be a string')

    project = project_service.update_project(project, name=name.strip(), goal_description=goal_description)
    return jsonify({'success': True, 'project': project.to_dict()})


@api_projects_bp.route('/<int:project_id>', methods=['DELETE'])
@login_required
def delete_project(project_id):
    """Delete a project and its tasks. Other projects keep their positions."""
    project = project_service.get_owned_project(project_id, current_user.id)
    project_service.delete_project(project)
    return jsonify({'success': True})


@api_projects_bp.route('/<int:project_id>/tasks', methods=['GET'])
@with_etag
@login_required
def list_project_tasks(project_id):
    project = project_service.get_owned_project(project_id, current_user.id)
    tasks = task_service.list_tasks(project.id)
    return jsonify({
        'success': True,
        'tasks': [t.to_dict() for t in tasks],
    })


@api_projects_bp.route('/<int:project_id>/tasks', methods=['POST'])
@login_required
def create_project_task(project_id):
    """
    Create a task in a project.
    Placement: explicit ``position``, else ``after_id``, else appended at the end.
    """
    project = project_service.get_owned_project(project_id, current_user.id)
    data = request.get_json(silent=True) or {}

    content = data.get('content')
    error = validate_task_content(content)
    if error:
        return _bad_request(error)

    position, error = parse_optional_position(data.get('position'))
    if error:
        return _bad_request(error)
    after_id, error = parse_optional_id(data.get('after_id'), 'after_id')
    if error:
        return _bad_request(error)

    task = task_service.create_task(project.id, content, position=position, after_id=after_id)

    return jsonify({
        'success': True,
        'message': 'Task created successfully',
        'task': task.to_dict(),
    }), 201


@api_projects_bp.route('/<int:project_id>/tasks/reorder', methods=['POST'])
@login_required
def reorder_project_tasks(project_id):
    """
    Apply a full ordering of a project's tasks.
    Body: {"task_ids": [...]} naming every task of the project exactly once.
    """
    project = project_service.get_owned_project(project_id, current_user.id)
    data = request.get_json(silent=True) or {}
    task_ids, error = parse_id_list(data.get('task_ids'), 'task_ids')
    if error:
        return _bad_request(error)

    tasks = task_service.reorder_tasks(project.id, task_ids)

    logger.info(f"[REORDER] Updated positions for {len(tasks)} tasks by user {current_user.id}")

    return jsonify({
        'success': True,
        'message': f'Updated positions for {len(tasks)} tasks',
        'tasks': [t.to_dict() for t in tasks],
    })
