# Overview: Application factory; wires extensions, auth services, blueprints and CLI.

from __future__ import annotations

from flask import Flask, request

from .config import AuthSettings, Config
from .extensions import db, migrate
from .time_utils import Clock, utcnow


def create_app(config_overrides: dict | None = None, clock: Clock = utcnow) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    _init_auth_services(app, clock)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.admin import admin_bp  # Admin: User and role management

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _init_auth_services(app: Flask, clock: Clock) -> None:
    """Build the auth service graph once per app and park it in app.extensions."""
    from .services.auth_service import EXTENSION_KEY, AuthService
    from .services.credential_store import SqlCredentialStore
    from .services.permission_service import PermissionResolver
    from .services.revocation_service import RevocationLedger
    from .services.token_service import TokenCodec

    settings = AuthSettings.from_mapping(app.config)

    store = SqlCredentialStore()
    codec = TokenCodec(settings.secret, settings.issuer, settings.audience, clock=clock)
    ledger = RevocationLedger(clock=clock)
    resolver = PermissionResolver(store)

    app.extensions[EXTENSION_KEY] = AuthService(
        store=store,
        codec=codec,
        ledger=ledger,
        resolver=resolver,
        settings=settings,
        clock=clock,
    )
    app.extensions["animaid.revocations"] = ledger
