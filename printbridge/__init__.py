"""Flask application factory."""
import logging
from typing import Optional

from flask import Flask

from printbridge.printer import PrinterManager


def create_app(config_name: str = "default", manager: Optional[PrinterManager] = None):
    """Create and configure the Flask application.

    Args:
        config_name: Key into ``printbridge.config.config``.
        manager: Printer manager to serve; built from the config when omitted.
    """
    app = Flask(__name__)

    # Load configuration
    from printbridge.config import config
    app.config.from_object(config[config_name])

    logging.getLogger("printbridge").setLevel(app.config["LOG_LEVEL"])

    # One manager per application
    app.extensions["printer_manager"] = manager or PrinterManager.from_config(app.config)

    # Register blueprints
    from printbridge.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Root redirect
    @app.route("/")
    def index():
        from flask import redirect, url_for
        return redirect(url_for("api.capabilities"))

    return app
