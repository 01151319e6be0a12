# backend/backoffice/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Ledger and cash ledger rows are append-only
    from .immutability import register_immutability_listeners
    register_immutability_listeners()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.business_units import business_units_bp
    from .routes.cash import cash_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.counterparties import counterparties_bp
    from .routes.purchasing import purchasing_bp
    from .routes.scrapyard import scrapyard_bp
    from .routes.production import production_bp
    from .routes.payroll import payroll_bp
    from .routes.transfers import transfers_bp
    from .routes.jobs import jobs_bp
    from .routes.tasks import tasks_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(business_units_bp)
    app.register_blueprint(cash_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(counterparties_bp)
    app.register_blueprint(purchasing_bp)
    app.register_blueprint(scrapyard_bp)
    app.register_blueprint(production_bp)
    app.register_blueprint(payroll_bp)
    app.register_blueprint(transfers_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(reports_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
