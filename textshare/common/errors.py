import logging

from flask import jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

log = logging.getLogger("textshare.error")


class ApiError(Exception):
    status_code = 400
    code = "bad_request"

    def __init__(self, message, status_code=None, code=None, details=None, headers=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details or {}
        self.headers = headers or {}


class NoteValidationError(ApiError):
    status_code = 400
    code = "validation_error"


class NoteNotFound(ApiError):
    status_code = 404
    code = "not_found"

    def __init__(self, message="Note not found.", **kwargs):
        super().__init__(message, **kwargs)


class NoteNotProtected(ApiError):
    """Challenge demandé sur une note sans mot de passe."""
    status_code = 400
    code = "not_protected"

    def __init__(self, message="This note is not password protected.", **kwargs):
        super().__init__(message, **kwargs)


class InvalidPassword(ApiError):
    status_code = 401
    code = "invalid_password"

    def __init__(self, message="Invalid password.", **kwargs):
        super().__init__(message, **kwargs)


class StoreUnavailable(ApiError):
    """Timeout / perte de connexion côté persistance. Réessayable."""
    status_code = 503
    code = "store_unavailable"

    def __init__(self, message="Service temporarily unavailable, retry later.", retry_after=5, **kwargs):
        kwargs.setdefault("headers", {"Retry-After": str(retry_after)})
        super().__init__(message, **kwargs)


def _json_error(message, status, code, details=None, headers=None):
    resp = jsonify({
        "error": {"code": code, "message": message, "details": details or {}}
    })
    resp.status_code = status
    for key, value in (headers or {}).items():
        resp.headers[key] = value
    return resp


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        if isinstance(e, StoreUnavailable):
            # détail interne dans les logs uniquement
            log.warning("store_unavailable", extra={"cause": repr(e.__cause__)})
        return _json_error(e.message, e.status_code, e.code, e.details, e.headers)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return _json_error("Invalid request body.", 400, "validation_error", e.messages)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        # Ex: 404, 405, 413…
        return _json_error(e.description or "HTTP error", e.code or 500, "http_error")

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        log.exception("unhandled_exception")
        return _json_error("Internal server error.", 500, "internal_error")
