"""
And Then? Core - Flask application factory

Wires configuration, logging, the database (with SQLite transaction setup),
Flask-Login JWT auth, blueprints and JSON error handlers.
"""

import logging

from flask import Flask, jsonify
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

from config import load_config
from models import db
from services.errors import ServiceError
from utils.auth import init_auth
from utils.startup_validation import BlueprintRegistry, run_startup_validation

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    logging.getLogger().setLevel(getattr(logging, level, logging.INFO))


def configure_sqlite_engine(engine, begin_mode: str) -> None:
    """
    Make SQLite behave for position updates.

    - foreign keys on, so deleting a user or project cascades
    - pysqlite's implicit transaction handling off, and every transaction
      opened with ``BEGIN <mode>``; IMMEDIATE takes the write lock up front
      so a max-position read and the following insert cannot interleave with
      another writer
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(f"BEGIN {begin_mode}")


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'success': False, 'message': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return jsonify({'success': False, 'message': 'Internal server error'}), 500


def create_app(test_config=None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        test_config: Optional mapping applied over the environment config
    """
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    if test_config:
        app.config.update(test_config)

    configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            configure_sqlite_engine(db.engine, app.config["SQLITE_BEGIN_MODE"])
        if app.config["AUTO_CREATE_SCHEMA"]:
            db.create_all()

    init_auth(app)

    from routes.auth import auth_bp
    from routes.api_projects import api_projects_bp
    from routes.api_tasks import api_tasks_bp
    from routes.health import health_bp

    registry = BlueprintRegistry(app)
    for blueprint in (auth_bp, api_projects_bp, api_tasks_bp, health_bp):
        registry.register(blueprint)
    app.extensions["blueprint_registry"] = registry

    register_error_handlers(app)
    app.extensions["startup_report"] = run_startup_validation(app)

    with app.app_context():
        logger.info(f"App created ({app.config['ENV_NAME']}), database {db.engine.url.render_as_string(hide_password=True)}")
    return app
