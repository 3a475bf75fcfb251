"""
ProFlow
Flask Application Factory.

Usage:
    from proflow import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from proflow.config import config
from proflow.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from proflow.middleware.jwt_auth import init_jwt_middleware
from proflow.middleware.logging_config import configure_logging
from proflow.middleware.rate_limiter import init_rate_limits
from proflow.middleware.security_headers import init_security_headers
from proflow.middleware.tenant_context import init_tenant_context
from proflow.middleware.timing import init_request_timing
from proflow.models import db
from proflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)

# HTTP status → error code for werkzeug/Flask-raised errors
_HTTP_CODES = {
    400: E.VALIDATION_INVALID,
    401: E.UNAUTHORIZED,
    403: E.FORBIDDEN,
    404: E.NOT_FOUND,
    405: E.METHOD_NOT_ALLOWED,
    413: E.PAYLOAD_TOO_LARGE,
    415: E.UNSUPPORTED_MEDIA_TYPE,
    429: E.RATE_LIMITED,
}


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # ── Middleware chain: timing → JWT → tenant context ─────────────────
    init_request_timing(app)
    init_security_headers(app)
    init_jwt_middleware(app)
    init_tenant_context(app)

    # ── Request guards (Content-Type) ────────────────────────────────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.content_length and "json" not in ct and "multipart/form-data" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so create_all / Alembic can detect them ────────
    from proflow.models import auth as _auth_models                  # noqa: F401
    from proflow.models import project as _project_models            # noqa: F401
    from proflow.models import task as _task_models                  # noqa: F401
    from proflow.models import sprint as _sprint_models              # noqa: F401
    from proflow.models import personal_task as _personal_task_models  # noqa: F401
    from proflow.models import email_log as _email_log_models        # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except SQLAlchemyError as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from proflow.blueprints.auth_bp import auth_bp
    from proflow.blueprints.employee_bp import employee_bp
    from proflow.blueprints.health_bp import health_bp
    from proflow.blueprints.personal_task_bp import personal_task_bp
    from proflow.blueprints.project_bp import project_bp
    from proflow.blueprints.sprint_bp import sprint_bp
    from proflow.blueprints.task_bp import task_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(employee_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(sprint_bp)
    app.register_blueprint(personal_task_bp)
    app.register_blueprint(health_bp)

    register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


def register_error_handlers(app):
    """Translate service exceptions and HTTP errors into the JSON error body.

    Every handler rolls the session back so a failed request leaves no
    partial writes behind.
    """

    @app.errorhandler(ValidationError)
    def _validation(e):
        db.session.rollback()
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(AuthenticationError)
    def _authentication(e):
        db.session.rollback()
        return api_error(E.UNAUTHORIZED, str(e))

    @app.errorhandler(AuthorizationError)
    def _authorization(e):
        db.session.rollback()
        return api_error(E.FORBIDDEN, str(e))

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        db.session.rollback()
        logger.debug("Not found: %s", e)
        return api_error(E.NOT_FOUND, e.public_message)

    @app.errorhandler(ConflictError)
    def _conflict(e):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, f"{e.resource} with this {e.field} already exists")

    @app.errorhandler(HTTPException)
    def _http(e):
        db.session.rollback()
        code = _HTTP_CODES.get(e.code, E.INTERNAL if e.code >= 500 else E.VALIDATION_INVALID)
        message = e.description if e.code != 404 else "Not found"
        if e.code == 413:
            message = "Request body too large"
        return api_error(code, message, status=e.code)

    @app.errorhandler(Exception)
    def _unexpected(e):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        details = {"detail": str(e)} if app.debug else None
        code = E.DATABASE if isinstance(e, SQLAlchemyError) else E.INTERNAL
        return api_error(code, "Internal server error", status=500, details=details)
