import logging
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Settings
from .errors import RelayError
from .extensions import limiter
from .relay import VideoRelay
from .routes import api
from .store import JobStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[JobStore] = None,
    relay: Optional[VideoRelay] = None,
) -> Flask:
    if relay is not None:
        settings = relay.settings
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    settings.download_dir.mkdir(parents=True, exist_ok=True)
    relay = relay or VideoRelay(settings, store=store)

    app = Flask(__name__)

    # Respect reverse-proxy headers in production (X-Forwarded-For/Proto)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    app.config["DOWNLOAD_DIR"] = str(settings.download_dir)
    app.config["RATELIMIT_ENABLED"] = settings.ratelimit_enabled
    app.config["GENERATE_RATE_LIMIT"] = settings.generate_rate_limit
    app.config["STATUS_RATE_LIMIT"] = settings.status_rate_limit
    limiter.init_app(app)

    # CORS configuration: allow specific origins in production via CORS_ORIGINS
    if settings.cors_origins:
        CORS(app, origins=settings.cors_origins, supports_credentials=True)
    else:
        # Default permissive CORS for local/dev
        CORS(app)

    app.extensions["video_relay"] = relay
    app.register_blueprint(api)
    register_error_handlers(app)

    logger.info("[startup] %d engines, downloads in %s", len(relay.engines), settings.download_dir)
    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(RelayError)
    def relay_error_handler(e):
        if e.status_code >= 500:
            logger.error("[error] %s: %s", type(e).__name__, e.message)
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"error": "Too many requests", "details": str(getattr(e, "description", "rate limit exceeded"))}), 429

    @app.errorhandler(Exception)
    def unhandled_error_handler(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description or e.name}), e.code
        logger.exception("[error] Unhandled exception: %s", e)
        return jsonify({"error": "Internal server error"}), 500
