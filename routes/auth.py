"""
Auth API Routes
Registration, login and current-user endpoints issuing JWT bearer tokens.
"""

import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from services import user_service
from utils.auth import generate_token

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create an account (with a default project) and return a token."""
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    password = data.get('password')

    if not email or not password or not isinstance(email, str) or not isinstance(password, str):
        return jsonify({'success': False, 'message': 'Email and password are required'}), 400

    user = user_service.register_user(email, password)

    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'token': generate_token(user),
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    password = data.get('password')

    if not email or not password or not isinstance(email, str) or not isinstance(password, str):
        return jsonify({'success': False, 'message': 'Email and password are required'}), 400

    user = user_service.authenticate(email, password)
    if user is None:
        return jsonify({'success': False, 'message': 'Invalid email or password'}), 401

    logger.info(f"[AUTH] Login successful for user {user.id}")
    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'token': generate_token(user),
    })


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """Current user with project and task counts."""
    return jsonify({
        'success': True,
        'user': current_user.to_dict(),
        'stats': user_service.get_user_stats(current_user.id),
    })
