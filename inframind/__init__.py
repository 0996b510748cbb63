"""
InfraMind Analysis Platform
Flask Application Factory.

Usage:
    from inframind import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from inframind.config import config
from inframind.middleware.jwt_auth import init_jwt_middleware
from inframind.middleware.logging_config import configure_logging
from inframind.middleware.rate_limiter import init_rate_limits
from inframind.middleware.timing import init_request_timing
from inframind.models import db
from inframind.utils.errors import init_error_handlers

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


def create_app(config_name=None, *, hypothesis_provider=None, clock=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        hypothesis_provider: Optional ``provider(context) -> list[dict]``
                     backing POST /analyses/<id>/hypotheses/suggest.
        clock: Optional zero-arg callable returning an aware datetime,
                     used by services instead of the wall clock.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its env vars
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

    app.extensions["hypothesis_provider"] = hypothesis_provider
    app.extensions["clock"] = clock

    # ── Request timing, then identity ────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from inframind.models import analysis as _analysis_models  # noqa: F401
    from inframind.models import audit as _audit_models        # noqa: F401
    from inframind.models import auth as _auth_models          # noqa: F401
    from inframind.models import report as _report_models      # noqa: F401
    from inframind.models import task as _task_models          # noqa: F401

    # ── Local databases get their tables on startup; production migrates ──
    if config_name != "production":
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from inframind.blueprints.analysis_bp import analysis_bp
    from inframind.blueprints.health_bp import health_bp
    from inframind.blueprints.report_bp import report_bp
    from inframind.blueprints.task_bp import task_bp

    app.register_blueprint(analysis_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(report_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    init_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    logger.debug("InfraMind app created (config=%s)", config_name)
    return app
