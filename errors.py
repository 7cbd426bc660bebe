"""Error taxonomy and JSON error envelopes.

Every failure leaves the service as
    {"success": false, "error": <kind>, "message": <text>}
so callers can branch on `error` (e.g. duplicate vs storage failure).
"""

from __future__ import annotations

from flask import jsonify, request
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from werkzeug.exceptions import HTTPException

from extensions import db


class CarbonCheckError(Exception):
    kind = "internal"
    status_code = 500
    default_message = "Internal server error"
    retryable = False

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.kind, "message": self.message}
        if self.retryable:
            body["retryable"] = True
        return body


class InvalidRequest(CarbonCheckError):
    kind = "invalid_request"
    status_code = 400
    default_message = "Invalid request"


class InvalidUser(CarbonCheckError):
    kind = "invalid_user"
    status_code = 400
    default_message = "User identifier is required"


class InvalidScore(CarbonCheckError):
    kind = "invalid_score"
    status_code = 400
    default_message = "Score must be a finite number"


class Unauthorized(CarbonCheckError):
    kind = "unauthorized"
    status_code = 403
    default_message = "Admin access required"


class NotFound(CarbonCheckError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class DuplicateSubmission(CarbonCheckError):
    kind = "duplicate_submission"
    status_code = 409
    default_message = "Footprint already submitted for this date"


class StorageUnavailable(CarbonCheckError):
    kind = "storage_unavailable"
    status_code = 503
    default_message = "Storage temporarily unavailable, please retry"
    retryable = True


class Internal(CarbonCheckError):
    pass


def json_object() -> dict:
    """Request body as a dict; missing/invalid JSON is {}, other JSON types are rejected."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest("JSON body must be an object")
    return data


def install_error_handlers(app) -> None:
    @app.errorhandler(CarbonCheckError)
    def _handle_typed(err: CarbonCheckError):
        if err.status_code >= 500:
            app.logger.error("%s: %s", err.kind, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(OperationalError)
    @app.errorhandler(PoolTimeoutError)
    def _handle_storage(err):
        db.session.rollback()
        app.logger.warning("Storage unavailable: %s", err)
        wrapped = StorageUnavailable()
        return jsonify(wrapped.to_dict()), wrapped.status_code

    @app.errorhandler(HTTPException)
    def _handle_http(err: HTTPException):
        # 404 for unknown routes, 405, 429 from Flask-Limiter, ...
        kind = (err.name or "error").lower().replace(" ", "_")
        return jsonify({"success": False, "error": kind, "message": err.description}), err.code

    @app.errorhandler(Exception)
    def _handle_unexpected(err: Exception):
        try:
            db.session.rollback()
        except Exception:
            pass
        app.logger.exception("Unhandled error")
        wrapped = Internal()
        return jsonify(wrapped.to_dict()), wrapped.status_code
