import atexit
import logging
import time

from flask import Flask, g, request
from flasgger import Swagger
from flask_cors import CORS
from flask_mail import Mail

from .config import get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from services import build_services
from services.mailer import MailOtpDelivery
from services.sweeper import BlacklistSweeper

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Course Auth API",
        "version": "1.0.0",
        "description": "Registration, OTP login, token rotation and role-based access to courses.",
    },
    "basePath": "/",  # Blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}

mail = Mail()


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` is applied on top of the selected config class (tests use it
    to point the app at a throwaway database).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    # Cross-Origin Resource Sharing; credentials so the refresh cookie travels
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    # Database
    storage.configure(app.config["DATABASE_URL"])
    storage.reload()

    # Mail and the auth services
    mail.init_app(app)
    mailer = MailOtpDelivery(
        mail,
        sender=app.config.get("MAIL_DEFAULT_SENDER"),
        console_fallback=bool(app.config.get("MAIL_CONSOLE_FALLBACK")) and not app.config.get("MAIL_USERNAME"),
    )
    engine, guard = build_services(app.config, storage, mailer)
    app.extensions["session_engine"] = engine
    app.extensions["access_guard"] = guard

    if app.config.get("BLACKLIST_SWEEP_ENABLED"):
        sweeper = BlacklistSweeper(
            engine.revocations, storage, interval=app.config["BLACKLIST_SWEEP_INTERVAL_SECONDS"]
        )
        sweeper.start()
        atexit.register(sweeper.stop)
        app.extensions["blacklist_sweeper"] = sweeper

    # Register blueprints
    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .commands import register_commands

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")
    register_commands(app)

    # One access-log line per request
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get("request_started")
        ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        logger.info(
            "%s %s %d %s - %.1fms",
            request.method,
            request.path,
            response.status_code,
            response.content_length or 0,
            ms,
        )
        return response

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Course Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    logger.info("Course Auth API configured (%s)", app.config.get("APP_ENV"))
    return app
