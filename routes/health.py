"""
Health Check Endpoints

1. /health/live - Liveness probe (is the process alive?)
2. /health/ready - Readiness probe (database reachable, blueprints loaded)
"""

import time
import logging
from typing import Dict, Any

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='/health')


def check_database_health() -> Dict[str, Any]:
    """
    Check database connectivity.

    Returns dict with:
    - healthy: bool
    - latency_ms: response time
    - error: error message if unhealthy
    """
    start = time.time()
    try:
        db.session.execute(text("SELECT 1")).fetchone()
        db.session.rollback()  # Don't leave open transaction
        return {'healthy': True, 'latency_ms': round((time.time() - start) * 1000, 2)}
    except Exception as e:
        db.session.rollback()
        logger.error(f"Database health check failed: {e}")
        return {
            'healthy': False,
            'latency_ms': round((time.time() - start) * 1000, 2),
            'error': str(e)[:200],
        }


@health_bp.route('/live', methods=['GET'])
def live():
    return jsonify({'status': 'alive'})


@health_bp.route('/ready', methods=['GET'])
def ready():
    """Database reachable and every blueprint registered."""
    database = check_database_health()
    registry = current_app.extensions.get('blueprint_registry')
    blueprints = registry.get_status() if registry is not None else {'loaded_count': 0, 'failed_count': 0}

    healthy = database['healthy'] and blueprints['failed_count'] == 0
    return jsonify({
        'status': 'ready' if healthy else 'not_ready',
        'checks': {'database': database, 'blueprints': blueprints},
    }), 200 if healthy else 503
