# backend/stockcycle/__init__.py
import logging
from typing import Mapping, Optional

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: Optional[Mapping] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if isinstance(level, int):
        app.logger.setLevel(level)
        logging.getLogger("stockcycle").setLevel(level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.inventories import inventories_bp
    from .routes.counts import counts_bp
    from .routes.transits import transits_bp
    from .routes.integrator import integrator_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(inventories_bp)
    app.register_blueprint(counts_bp)
    app.register_blueprint(transits_bp)
    app.register_blueprint(integrator_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or ())

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
