"""Error translation: taxonomy errors to CF v3 error envelopes.

``translate`` is total: anything that is not a recognised taxonomy error is
rendered exactly like ``UnknownError`` so internal failures never leak.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass

from flask import jsonify
from werkzeug.exceptions import HTTPException

from cfapi.core.errors import (
    ApiError,
    ForbiddenError,
    InvalidAuthError,
    MessageParseError,
    NotAuthenticatedError,
    NotFoundError,
    UnknownError,
    UnprocessableEntityError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorShape:
    status: int
    code: int
    title: str


UNKNOWN = ErrorShape(500, 10001, "UnknownError")

ERROR_TABLE: dict[type, ErrorShape] = {
    NotFoundError: ErrorShape(404, 10010, "CF-ResourceNotFound"),
    ForbiddenError: ErrorShape(403, 10003, "CF-NotAuthorized"),
    UnprocessableEntityError: ErrorShape(422, 10008, "CF-UnprocessableEntity"),
    NotAuthenticatedError: ErrorShape(401, 10002, "CF-NotAuthenticated"),
    InvalidAuthError: ErrorShape(401, 1000, "CF-InvalidAuthToken"),
    MessageParseError: ErrorShape(400, 1001, "CF-MessageParseError"),
    UnknownError: UNKNOWN,
}

UNKNOWN_DETAIL = UnknownError().detail


def envelope(code: int, title: str, detail: str) -> dict:
    return {"errors": [{"code": code, "title": title, "detail": detail}]}


def translate(error: BaseException) -> tuple[int, dict]:
    """Map an error to ``(http_status, envelope)``.

    Lookup is by exact class so a subclass can never borrow its parent's
    detail; every unlisted type takes the generic unknown-error shape.
    """
    shape = ERROR_TABLE.get(type(error))
    if shape is None or shape is UNKNOWN or not isinstance(error, ApiError):
        return UNKNOWN.status, envelope(UNKNOWN.code, UNKNOWN.title, UNKNOWN_DETAIL)
    return shape.status, envelope(shape.code, shape.title, error.detail)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        status, body = translate(error)
        if status >= 500:
            cause = getattr(error, "cause", None) or error
            logger.error(f"Request failed with unknown error: {cause!r}", exc_info=cause)
        return jsonify(body), status

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        """Routing errors (unknown URL, wrong method) in the same envelope."""
        if error.code == 404:
            return jsonify(envelope(10000, "CF-NotFound", "Unknown request")), 404
        status = error.code or 500
        if status >= 500:
            return jsonify(envelope(UNKNOWN.code, UNKNOWN.title, UNKNOWN_DETAIL)), status
        return jsonify(envelope(status, f"CF-{error.name.replace(' ', '')}", error.description or error.name)), status

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {error!r}", exc_info=error)
        status, body = translate(error)
        return jsonify(body), status
