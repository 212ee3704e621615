# backend/storefront/__init__.py
from datetime import timedelta

from flask import Flask

from .config import Config, insecure_settings
from .extensions import db, migrate


def _engine_options(config) -> dict:
    """Bound every storage wait by DB_TIMEOUT_SECONDS."""
    timeout = config["DB_TIMEOUT_SECONDS"]
    uri = config["SQLALCHEMY_DATABASE_URI"]
    if uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout}}
    if uri.startswith("postgresql"):
        return {
            "pool_pre_ping": True,
            "pool_timeout": timeout,
            "connect_args": {
                "connect_timeout": max(1, int(timeout)),
                "options": f"-c statement_timeout={int(timeout * 1000)}",
            },
        }
    return {"pool_timeout": timeout}


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    for problem in insecure_settings(app.config):
        app.logger.error("INSECURE_CONFIG %s (APP_ENV=%s)", problem, app.config["APP_ENV"])

    app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", _engine_options(app.config))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Process-wide collaborators, built once from configuration
    from .services.credential_service import TokenManager
    from .services.oauth_service import build_oauth_providers

    app.extensions["token_manager"] = TokenManager(
        app.config["JWT_SECRET_KEY"],
        algorithm=app.config["JWT_ALGORITHM"],
        ttl=timedelta(days=app.config["TOKEN_TTL_DAYS"]),
    )
    app.extensions["oauth_providers"] = build_oauth_providers(
        app.config, app.config.get("OAUTH_HTTP_CLIENT")
    )
    app.logger.debug("OAuth providers configured: %s", sorted(app.extensions["oauth_providers"]))

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.stores import stores_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(stores_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
