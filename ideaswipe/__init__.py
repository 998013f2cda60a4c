"""
Idea Swipe
Flask Application Factory.

Usage:
    from ideaswipe import create_app
    app = create_app()           # APP_ENV, default "development"
    app = create_app("testing")

CLI (``flask --app wsgi ...``):
    progression-sweep        run one promotion + delegation sweep
    seed-progression-rules   copy the default rules into progression_settings
"""

import importlib
import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from ideaswipe.config import config
from ideaswipe.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ideaswipe.middleware.identity_context import init_identity_context
from ideaswipe.middleware.logging_config import configure_logging
from ideaswipe.middleware.rate_limiter import init_rate_limits, rate_limit_key
from ideaswipe.middleware.timing import init_request_timing
from ideaswipe.models import db
from ideaswipe.utils.errors import E, api_error

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """SQLite ships with FK enforcement off; ON DELETE CASCADE / SET NULL rely on it."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name or os.getenv("APP_ENV", "development")])

    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    origins = app.config.get("CORS_ORIGINS", "*")
    if origins and origins != "*":
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request hooks (timing first so it sees every request) ────────────
    init_request_timing(app)
    init_identity_context(app)

    # ── Schema ───────────────────────────────────────────────────────────
    importlib.import_module("ideaswipe.models.idea")
    importlib.import_module("ideaswipe.models.activity")
    importlib.import_module("ideaswipe.models.notification")
    importlib.import_module("ideaswipe.models.progression")
    importlib.import_module("ideaswipe.models.scheduling")

    uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if uri.startswith("sqlite:///") and ":memory:" not in uri:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
        except Exception as exc:
            app.logger.warning("db.create_all() failed, relying on migrations: %s", exc)

    # ── Blueprints ───────────────────────────────────────────────────────
    from ideaswipe.blueprints.delegation_bp import delegation_bp
    from ideaswipe.blueprints.engagement_bp import engagement_bp
    from ideaswipe.blueprints.health_bp import health_bp
    from ideaswipe.blueprints.notification_bp import notification_bp
    from ideaswipe.blueprints.progression_bp import progression_bp

    for bp in (progression_bp, engagement_bp, delegation_bp, notification_bp, health_bp):
        app.register_blueprint(bp)

    _register_cli(app)
    _register_error_handlers(app)

    # limits are attached per endpoint, so after the blueprints exist
    init_rate_limits(app, limiter)

    # ── Scheduler ────────────────────────────────────────────────────────
    importlib.import_module("ideaswipe.services.scheduled_jobs")
    from ideaswipe.services.scheduler_service import SchedulerService
    SchedulerService.init_app(app)
    if app.config.get("SCHEDULER_ENABLED") and not app.config.get("TESTING"):
        SchedulerService.start()

    return app


def _register_cli(app):

    @app.cli.command("progression-sweep")
    def progression_sweep_cmd():
        """Run one auto-progression sweep (promotions + delegations)."""
        from ideaswipe.services.auto_progression import AutoProgressionService

        summary = AutoProgressionService().run_full_sweep().to_dict()
        click.echo(
            f"Sweep done: {summary['promotion_count']} promoted, "
            f"{summary['delegation_count']} delegated, {summary['skipped']} skipped, "
            f"{len(summary['errors'])} errors"
        )
        for error in summary["errors"]:
            click.echo(f"  ! {error}", err=True)

    @app.cli.command("seed-progression-rules")
    def seed_progression_rules_cmd():
        """Copy the default like-ratio rules into progression_settings."""
        from ideaswipe.services.progression_rules import seed_default_rules

        click.echo(f"Seeded {seed_default_rules()} new progression rules.")


def _register_error_handlers(app):
    """Service exceptions and framework errors as JSON."""

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        logger.info("Not found: %s", e)
        return api_error(E.NOT_FOUND, f"{e.resource} not found")

    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details or None)

    @app.errorhandler(ConflictError)
    def handle_conflict(e):
        return api_error(E.CONFLICT_STATE, str(e))

    @app.errorhandler(AuthorizationError)
    def handle_forbidden(e):
        logger.warning("Forbidden: %s", e)
        return api_error(E.FORBIDDEN, f"Not allowed to {e.action} {e.resource}")

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, f"No route for {request.path}")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests",
                         details={"limit": str(e.description)})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error: %s", e, exc_info=True)
        db.session.rollback()
        return api_error(E.INTERNAL, "Internal server error")
