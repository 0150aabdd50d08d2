#!/usr/bin/env python3
"""
QuoteDesk — Application Entry Point
Creates the Flask app and registers the pricing API Blueprint.
"""
import logging
import os

from flask import Flask

from quotedesk.core.auth import StaticCredentialAuthenticator
from quotedesk.core.config import load_config
from quotedesk.core.logging_config import setup_logging


def create_app(config_overrides=None, authenticator=None, configure_logging=True):
    """Application factory."""
    if configure_logging:
        setup_logging()
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "quotedesk-dev")

    app.config["PRICING_CONFIG"] = load_config(config_overrides)
    app.config["AUTHENTICATOR"] = authenticator or StaticCredentialAuthenticator()

    from quotedesk.api.routes import bp
    app.register_blueprint(bp)

    logging.getLogger("quotedesk").info(
        "QuoteDesk ready (strict_invariants=%s)", app.config["PRICING_CONFIG"]["strict_invariants"])
    return app


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, debug=False)
