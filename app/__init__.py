from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import logging
import os

db = SQLAlchemy()

logger = logging.getLogger(__name__)


def _init_sentry(app):
    dsn = app.config.get("SENTRY_DSN")
    if not dsn:
        if not app.debug and not app.testing:
            logger.warning("SENTRY_DSN is not set -- error monitoring is disabled.")
        return
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=0.1,
    )


def _register_error_handlers(app):
    from app.errors import MarketplaceError

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(e):
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(429)
    def ratelimit_handler(e):
        retry_after = dict(e.get_headers()).get("Retry-After") if hasattr(e, "get_headers") else None
        retry_after_seconds = int(retry_after) if retry_after else 60
        return jsonify({
            "error": "Too many requests. Please try again later.",
            "code": "rate_limited",
            "retry_after": retry_after_seconds,
        }), 429

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return e
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "code": "internal_error"}), 500


def _register_request_hooks(app):
    from app.utils.sanitize import sanitize_dict

    @app.before_request
    def sanitize_json_input():
        """Escape HTML in every string of an incoming JSON body."""
        if request.is_json:
            raw = request.get_json(silent=True)
            if raw is not None:
                request._cached_json = (sanitize_dict(raw), sanitize_dict(raw))

    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'"
        if not app.debug and not app.testing:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def create_app(config_name=None):
    """Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.getenv("FLASK_ENV", "development")

    from config import config
    app.config.from_object(config.get(config_name, config["default"]))

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _init_sentry(app)

    # Initialize extensions
    from extensions import limiter
    from app.middleware import RequestIdMiddleware
    from app.realtime import socketio

    db.init_app(app)
    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})
    limiter.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=app.config["CORS_ORIGINS"],
        async_mode=app.config["SOCKETIO_ASYNC_MODE"],
    )
    app.wsgi_app = RequestIdMiddleware(app.wsgi_app)

    _register_error_handlers(app)
    _register_request_hooks(app)

    # Register blueprints
    from app.routes import all_blueprints
    for blueprint in all_blueprints:
        app.register_blueprint(blueprint)

    # Health check endpoint
    @app.route("/api/health")
    @limiter.exempt
    def health():
        return {"status": "healthy", "service": "roadside-backend"}, 200

    # Import models so create_all sees every table
    from app import models  # noqa: F401

    if not app.testing:
        with app.app_context():
            db.create_all()

    return app
