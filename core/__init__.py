"""Core utilities for the Google Docs MCP server."""

from core.config import EngineSettings, get_settings
from core.container import Container, get_container, reset_container, set_container
from core.errors import (
    APIError,
    AuthenticationError,
    BoundsError,
    ConversionError,
    CredentialsNotFoundError,
    DocsMCPError,
    EmptyHistoryError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    RecursionLimitError,
    ResourceNotFoundError,
    TransientRemoteError,
    ValidationError,
    translate_http_error,
)
from core.utils import (
    TransientNetworkError,
    handle_http_errors,
    validate_batch_size,
    validate_document_id,
    validate_non_negative_int,
    validate_positive_int,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "BoundsError",
    "Container",
    "ConversionError",
    "CredentialsNotFoundError",
    "DocsMCPError",
    "EmptyHistoryError",
    "EngineSettings",
    "get_container",
    "get_settings",
    "handle_http_errors",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitError",
    "RecursionLimitError",
    "reset_container",
    "ResourceNotFoundError",
    "set_container",
    "TransientNetworkError",
    "TransientRemoteError",
    "translate_http_error",
    "validate_batch_size",
    "validate_document_id",
    "validate_non_negative_int",
    "validate_positive_int",
    "ValidationError",
]
