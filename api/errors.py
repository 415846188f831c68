import logging

from flask import jsonify
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors that are reported to the client as-is."""

    code = "internal"
    status = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class InvalidArgument(APIError):
    code = "invalid_argument"
    status = 400
    default_message = "Invalid argument"


class AlreadyExists(APIError):
    code = "already_exists"
    status = 409
    default_message = "Resource already exists"


class Unauthenticated(APIError):
    code = "unauthenticated"
    status = 401
    default_message = "Unauthenticated"


class Internal(APIError):
    pass


def error_response(code: str, message: str, status: int, details: dict | None = None):
    payload = {"code": code, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def _first_message(messages) -> str:
    """Dig the first human-readable message out of marshmallow's nested errors."""
    if isinstance(messages, dict):
        for value in messages.values():
            return _first_message(value)
    if isinstance(messages, (list, tuple)) and messages:
        return _first_message(messages[0])
    if isinstance(messages, str):
        return messages
    return "Invalid input"


def _rollback():
    # Imported lazily: the app factory registers handlers before storage is touched
    from models import storage

    storage.rollback()


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        if err.status >= 500:
            logger.error("%s: %s", err.__class__.__name__, err.message)
        return error_response(err.code, err.message, err.status, details=err.details)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return error_response("invalid_argument", _first_message(err.messages), 400, details=err.messages)

    # Integrity errors (unique constraints, FK violations)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        _rollback()
        lower_msg = str(getattr(err, "orig", err)).lower()
        if "unique constraint" in lower_msg or "unique violation" in lower_msg or "duplicate key" in lower_msg:
            logger.info("Unique constraint violated: %s", lower_msg)
            return error_response("already_exists", "Resource already exists", 409)
        logger.exception("Integrity error", exc_info=err)
        return error_response("internal", "Internal server error", 500)

    # Werkzeug HTTPExceptions keep their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 500
        code = (err.name or "error").lower().replace(" ", "_")
        return error_response(code, err.description or err.name, status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        _rollback()
        logger.exception("Unhandled exception", exc_info=err)
        return error_response("internal", "Internal server error", 500)
