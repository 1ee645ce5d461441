import logging
import os

from flask import Flask, jsonify, render_template, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from certstamp.admin_routes import admin_bp
from certstamp.auth import EXTENSION_KEY, wants_json
from certstamp.auth_routes import auth_bp
from certstamp.cert_routes import certs_bp
from certstamp.commands import register_commands
from certstamp.config import Config, configure_logging
from certstamp.database import CertificateStore
from certstamp.errors import CertStampError, NotFoundError, PipelineError, ValidationError
from certstamp.identity import IdentityService

logger = logging.getLogger(__name__)


def create_app(config=None, store=None, identity=None):
    """
    Build the Flask app.

    store / identity default to the SQLite implementations at DB_PATH; pass
    other objects with the same methods to run against a different backend.
    """
    config = config or Config.from_env()
    configure_logging(config.LOG_LEVEL)

    app = Flask(__name__)
    app.config.update(config.to_flask())

    os.makedirs(app.config["UPLOADS_DIR"], exist_ok=True)
    os.makedirs(app.config["CERTS_DIR"], exist_ok=True)

    if store is None:
        store = CertificateStore(config.DB_PATH)
        store.init_db()
    if identity is None:
        identity = IdentityService(config.DB_PATH, token_ttl=config.ACCESS_TOKEN_TTL)
        identity.init_db()
    app.extensions[EXTENSION_KEY] = {"store": store, "identity": identity}

    app.register_blueprint(certs_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    register_commands(app)
    register_error_handlers(app)

    logger.info("Certificates verify against %s", config.BASE_URL)
    return app


def _error_response(error, message):
    if wants_json() or request.path.startswith("/api/"):
        body = {"error": message}
        if isinstance(error, NotFoundError):
            body["found"] = False
        return jsonify(body), error.status_code
    return render_template("error.html", status=error.status_code, message=message), error.status_code


def register_error_handlers(app):
    @app.errorhandler(CertStampError)
    def handle_certstamp_error(error):
        if error.status_code >= 500:
            # internals go to the log, never to the client
            logger.error("[%s] %s %s failed: %s", type(error).__name__, request.method, request.path,
                         error.message, exc_info=error)
            return _error_response(error, error.public_message)
        if not isinstance(error, NotFoundError):
            logger.info("[%s] %s %s: %s", type(error).__name__, request.method, request.path, error.message)
        return _error_response(error, error.message)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(_error):
        return handle_certstamp_error(
            ValidationError(f"File exceeds the {app.config['MAX_UPLOAD_MB']}MB limit")
        )

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception("[UNHANDLED] %s %s", request.method, request.path)
        return _error_response(PipelineError(), PipelineError.public_message)


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5001, debug=True)
