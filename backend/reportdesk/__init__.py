# backend/reportdesk/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    from .services import login_throttle_service
    login_throttle_service.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.reports import reports_bp
    from .routes.analytics import analytics_bp
    from .routes.admin import admin_bp
    from .routes.activity import activity_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(activity_bp)

    allowed_origins = set(app.config.get("CORS_ORIGINS", []))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    if app.config.get("ENSURE_ADMIN_USER"):
        _bootstrap_admin(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _bootstrap_admin(app: Flask) -> None:
    from .services.auth_service import ensure_admin_user

    with app.app_context():
        db.create_all()
        user, created = ensure_admin_user(
            app.config["ADMIN_USERNAME"],
            app.config["ADMIN_PASSWORD"],
            app.config.get("ADMIN_EMAIL"),
        )
        if created:
            app.logger.info("Created bootstrap admin user %s", user.username)
