"""Application factory and app-wide configuration."""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from drawdown.app.api.routes import api_bp
from drawdown.app.config import AppConfig
from drawdown.core.advisory import AdvisoryClient


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """Build the Flask app instance."""
    config = config or AppConfig.from_env()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.extensions["drawdown_config"] = config
    app.extensions["advisory_client"] = AdvisoryClient(
        api_key=config.advisory_api_key,
        model=config.advisory_model,
        timeout=config.advisory_timeout,
    )

    CORS(
        app,
        resources={r"/api/*": {"origins": config.cors_origins}},
        supports_credentials=True,
    )

    app.register_blueprint(api_bp, url_prefix="/api")
    return app
