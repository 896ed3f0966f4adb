# backend/shopledger/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app binds the engine
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.inventory import inventory_bp
    from .routes.allocations import allocations_bp
    from .routes.exchanges import exchanges_bp
    from .routes.repairs import repairs_bp
    from .routes.supplier_debts import supplier_debts_bp
    from .routes.payments import payments_bp
    from .routes.sales import sales_bp
    from .routes.activity import activity_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(allocations_bp)
    app.register_blueprint(exchanges_bp)
    app.register_blueprint(repairs_bp)
    app.register_blueprint(supplier_debts_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(activity_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS", []))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Content-Type, X-User-Id, X-User-Name, X-Shop-Id, X-User-Roles"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
