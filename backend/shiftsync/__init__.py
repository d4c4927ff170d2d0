# backend/shiftsync/__init__.py
import logging

from flask import Flask, request, jsonify, g

from .config import Config
from .errors import ShiftSyncError, Forbidden
from .extensions import db, migrate


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ShiftSyncError)
    def handle_shiftsync_error(error: ShiftSyncError):
        # Nothing half-written survives a rejected request
        db.session.rollback()

        if isinstance(error, Forbidden):
            from .models import SecurityEventType
            from .services import permission_service

            user = getattr(g, "current_user", None)
            permission_service.log_security_event(
                user_id=user.id if user is not None else None,
                event_type=SecurityEventType.PERMISSION_DENIED,
                success=False,
                resource=request.path,
                action=request.method,
                reason=error.message,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
        else:
            app.logger.info("%s %s -> %s: %s", request.method, request.path, error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions (engine options are read here)
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.venues import venues_bp
    from .routes.shifts import shifts_bp
    from .routes.time_entries import time_entries_bp
    from .routes.messages import messages_bp
    from .routes.till_verifications import till_verifications_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(venues_bp)
    app.register_blueprint(shifts_bp)
    app.register_blueprint(time_entries_bp)
    app.register_blueprint(messages_bp)
    app.register_blueprint(till_verifications_bp)

    _register_error_handlers(app)

    allowed_origins = {
        origin.strip()
        for origin in str(app.config.get("CORS_ALLOWED_ORIGINS", "")).split(",")
        if origin.strip()
    }

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
