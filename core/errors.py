"""
Custom error types for the Google Docs batch-mutation engine.

Every error raised by the engine or its tools derives from DocsMCPError, so
callers can catch the whole family in one place while still distinguishing
bounds, conversion, history and remote failures.
"""

from typing import Any

from googleapiclient.errors import HttpError

# =============================================================================
# Base Exception Hierarchy
# =============================================================================


class DocsMCPError(Exception):
    """Base exception for all Google Docs MCP errors."""

    pass


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthenticationError(DocsMCPError):
    """Raised when authentication fails or credentials are invalid."""

    pass


class CredentialsNotFoundError(AuthenticationError):
    """Raised when no credentials are found for a user."""

    def __init__(self, user_email: str):
        super().__init__(
            f"No credentials found for user: {user_email}. Store an authorized-user token file for this account first."
        )
        self.user_email = user_email


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(DocsMCPError):
    """Raised when input validation fails."""

    pass


class BoundsError(ValidationError):
    """Raised when a table, row or column index falls outside the live structure."""

    def __init__(self, what: str, index: int, bound: int, context: str = ""):
        suffix = f" {context}" if context else ""
        super().__init__(f"{what} {index} out of range{suffix}. Valid range: [0,{bound})")
        self.what = what
        self.index = index
        self.bound = bound

    @property
    def valid_range(self) -> tuple[int, int]:
        return (0, self.bound)


class ConversionError(ValidationError):
    """Raised when the markdown converter meets structurally invalid input."""

    def __init__(self, message: str, token: str | None = None):
        super().__init__(message)
        self.token = token


# =============================================================================
# Lookup and Engine State Errors
# =============================================================================


class NotFoundError(DocsMCPError):
    """Raised when a referenced table, tab or snapshot does not exist."""

    def __init__(self, kind: str, identifier: Any, message: str | None = None):
        super().__init__(message or f"{kind.capitalize()} '{identifier}' not found.")
        self.kind = kind
        self.identifier = identifier


class RecursionLimitError(DocsMCPError):
    """Raised when a markdown table chain needs more phases than allowed."""

    def __init__(self, max_depth: int):
        super().__init__(f"Too many nested tables in markdown (max {max_depth}). Simplify the document.")
        self.max_depth = max_depth


class EmptyHistoryError(DocsMCPError):
    """Raised when undo or redo is requested with an empty stack."""

    def __init__(self, stack: str):
        if stack == "undo":
            message = "No snapshots available to undo. Create a snapshot before making changes."
        else:
            message = "No redo states available."
        super().__init__(message)
        self.stack = stack


# =============================================================================
# API Errors
# =============================================================================


class APIError(DocsMCPError):
    """Raised for general Google API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientRemoteError(APIError):
    """Raised when a single remote call fails (network, 5xx)."""

    pass


class ResourceNotFoundError(APIError):
    """Raised when a requested resource doesn't exist (404)."""

    pass


class PermissionDeniedError(APIError):
    """Raised when the user lacks permission for an operation (403)."""

    pass


class RateLimitError(APIError):
    """Raised when API rate limits are exceeded (429)."""

    pass


def translate_http_error(error: HttpError, context: str = "") -> APIError:
    """
    Convert a googleapiclient HttpError into the matching APIError subclass.

    Args:
        error: The HttpError raised by an execute() call
        context: Short description of the failed call, used as message prefix

    Returns:
        APIError: Subclass chosen by HTTP status
    """
    status = getattr(error.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    prefix = f"{context}: " if context else ""
    message = f"{prefix}{error}"

    if status == 404:
        return ResourceNotFoundError(message, status_code=status)
    if status == 403:
        return PermissionDeniedError(message, status_code=status)
    if status == 429:
        return RateLimitError(message, status_code=status)
    if status is None or status >= 500:
        return TransientRemoteError(message, status_code=status)
    return APIError(message, status_code=status)
