"""Error taxonomy shared by repositories, handlers and the error translator.

The set is closed: repositories turn every raw cluster failure into one of
these classes, and ``cfapi.api.errors.translate`` maps each class to exactly
one HTTP status / CF error code. Anything that is not an ``ApiError`` is
rendered exactly like ``UnknownError``.
"""
from __future__ import annotations
from typing import Optional


class ApiError(Exception):
    """Base class for every error that has a CF API rendering."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(ApiError):
    """Resource does not exist, or the caller may not know that it does."""

    def __init__(self, resource_type: str, cause: Optional[BaseException] = None):
        self.resource_type = resource_type
        self.cause = cause
        super().__init__(f"{resource_type} not found")


class ForbiddenError(ApiError):
    """Cluster explicitly denied the operation."""

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__("You are not authorized to perform the requested action")


class UnprocessableEntityError(ApiError):
    """Request is well-formed but cannot be applied (duplicates, invalid fields)."""


class UnknownError(ApiError):
    """Catch-all. The cause is kept for logs and never rendered."""

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__("An unknown error occurred.")


class NotAuthenticatedError(ApiError):
    """No credentials were supplied."""

    def __init__(self):
        super().__init__("Authentication error")


class InvalidAuthError(ApiError):
    """Credentials were supplied but could not be validated."""

    def __init__(self, reason: str = ""):
        self.reason = reason
        super().__init__("Invalid Auth Token")


class MessageParseError(ApiError):
    """Request body could not be parsed."""

    def __init__(self):
        super().__init__("Request invalid due to parse error: invalid request body")


class AuthClientBuildError(Exception):
    """Scoped cluster client could not be constructed.

    An infrastructure failure rather than an authorization decision; it is
    not an ``ApiError`` and repositories wrap it in ``UnknownError``.
    """
