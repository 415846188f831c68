import logging

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import DEV_ACCESS_SECRET, DEV_REFRESH_SECRET, get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "CMS Auth API",
        "version": "1.0.0",
        "description": "Sign-up, sign-in, token refresh/rotation and password management for the CMS.",
    },
    "basePath": "/",
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


def _check_secrets(app: Flask):
    if app.config["ENFORCE_SECRETS"]:
        if app.config["JWT_ACCESS_SECRET"] == DEV_ACCESS_SECRET or app.config["JWT_REFRESH_SECRET"] == DEV_REFRESH_SECRET:
            raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be set in production")


def create_app(config_name: str | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Each call builds an isolated app (tests create one per test).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    _check_secrets(app)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Credentials (cookies) require explicit origins
    CORS(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Uniform {code, message, status} error envelope
    register_error_handlers(app)

    from utils.tokens import TokenIssuer
    app.extensions["token_issuer"] = TokenIssuer.from_config(app.config)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .password import bp as password_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(password_bp)

    from .maintenance import TokenCleanupScheduler, register_commands
    register_commands(app)
    scheduler = TokenCleanupScheduler(app, app.config["TOKEN_CLEANUP_INTERVAL"])
    app.extensions["token_cleanup"] = scheduler
    if app.config["TOKEN_CLEANUP_ENABLED"]:
        scheduler.start()

    # Ensure the DB session is removed at the end of each request/app context
    # This calls scoped_session.remove(), preventing connection leaks
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to the CMS Auth API",
            "docs": "/apidocs/",
            "health": "/health",
        }, 200

    return app
