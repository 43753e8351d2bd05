from __future__ import annotations

import logging
import os
from http import HTTPStatus

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .errors import SecretSantaError
from .extensions import db, login_manager, migrate, csrf
from .logging_setup import setup_logging
from .policies import unauthorized_response
from .views.auth import auth_bp
from .views.santa import santa_bp

logger = logging.getLogger(__name__)


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///giftexchange.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["WTF_CSRF_TIME_LIMIT"] = None

    # Admin is the account whose name matches this exactly
    app.config["SANTA_ADMIN_NAME"] = os.environ.get("SANTA_ADMIN_NAME", "").strip()
    app.config["SANTA_DEFAULT_DEPARTMENT"] = os.environ.get("SANTA_DEFAULT_DEPARTMENT", "Event participant")

    app.config["SANTA_TX_MAX_ATTEMPTS"] = int(os.environ.get("SANTA_TX_MAX_ATTEMPTS", "3"))
    app.config["SANTA_TX_BACKOFF_SECONDS"] = float(os.environ.get("SANTA_TX_BACKOFF_SECONDS", "0.05"))
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")

    if test_config:
        app.config.update(test_config)

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        # Draws wait on each other's locks rather than failing immediately.
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {"connect_args": {"timeout": 15}})

    setup_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.unauthorized_handler(unauthorized_response)

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(santa_bp)

    _register_error_handlers(app)

    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SecretSantaError)
    def handle_secret_santa_error(e: SecretSantaError):
        logger.info("Request rejected: %s", e.code)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify(code=e.name.lower().replace(" ", "_"), message=e.description), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.exception("Unhandled error")
        return jsonify(code="internal_error", message="Something went wrong."), HTTPStatus.INTERNAL_SERVER_ERROR
