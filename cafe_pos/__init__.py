"""Flask application factory."""
import atexit
import os
from typing import Optional

from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def create_app(config_name: str = "default", overrides: Optional[dict] = None):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Load configuration
    from cafe_pos.config import config
    app.config.from_object(config[config_name])
    if overrides:
        app.config.update(overrides)

    from cafe_pos.logging_config import setup_logging
    setup_logging(app.config["LOG_LEVEL"], app.config.get("LOG_DIR"))

    # SQLite database and file fallback live in the instance folder
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)

    # Printer delivery, one coordinator per process so the device channel is shared
    from cafe_pos.printer import create_coordinator
    coordinator = create_coordinator(app.config)
    app.extensions["delivery_coordinator"] = coordinator
    atexit.register(coordinator.close)

    # Register blueprints
    from cafe_pos.routes.print import print_bp
    from cafe_pos.routes.api import api_bp

    app.register_blueprint(print_bp, url_prefix="/print")
    app.register_blueprint(api_bp, url_prefix="/api")

    # Root redirect
    @app.route("/")
    def index():
        from flask import redirect, url_for
        return redirect(url_for("print.history"))

    # Create tables
    with app.app_context():
        db.create_all()

    return app


def get_coordinator():
    """Return the delivery coordinator of the current app."""
    return current_app.extensions["delivery_coordinator"]
