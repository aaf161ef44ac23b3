# backend/fiscalpos/__init__.py
from __future__ import annotations

from flask import Flask

from .config import Config
from .services.checksum import is_valid_tax_id
from .extensions import db, migrate


def _engine_options(app: Flask) -> None:
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if not uri.startswith("sqlite"):
        return
    options = app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {})
    connect_args = options.setdefault("connect_args", {})
    connect_args.setdefault("timeout", app.config["SQLITE_BUSY_TIMEOUT_SECONDS"])


def _check_issuer(app: Flask) -> None:
    if not is_valid_tax_id(app.config["ISSUER_TAX_ID"]):
        raise ValueError("ISSUER_TAX_ID is not a valid tax-registration ID")
    if app.config["ACCESS_KEY_ENVIRONMENT"] not in ("1", "2"):
        raise ValueError("ACCESS_KEY_ENVIRONMENT must be 1 (test) or 2 (production)")


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    _check_issuer(app)

    _engine_options(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.identity import identity_bp
    from .routes.customers import customers_bp
    from .routes.sales import sales_bp
    from .routes.invoices import invoices_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(identity_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(invoices_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
