import asyncio
import functools
import logging
import re
import ssl

from googleapiclient.errors import HttpError

from core.errors import APIError, DocsMCPError, ValidationError, translate_http_error

logger = logging.getLogger(__name__)


def validate_document_id(document_id: str, param_name: str = "document_id") -> str:
    """Validate a Google Docs document ID."""
    if not document_id:
        raise ValidationError(f"{param_name} is required")

    document_id = document_id.strip()
    if not document_id:
        raise ValidationError(f"{param_name} cannot be empty")

    if not re.match(r"^[\w\-]+$", document_id):
        raise ValidationError(f"{param_name} contains invalid characters")

    return document_id


def validate_positive_int(value: int, param_name: str, max_value: int | None = None) -> int:
    """Validate a positive integer."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValidationError(f"{param_name} must be a positive integer")

    if max_value is not None and value > max_value:
        raise ValidationError(f"{param_name} cannot exceed {max_value}")

    return value


def validate_non_negative_int(value: int, param_name: str) -> int:
    """Validate a zero-based index."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValidationError(f"{param_name} must be a non-negative integer")
    return value


def validate_batch_size(items: list, param_name: str, max_items: int) -> list:
    """Validate that a batch is non-empty and within the configured limit."""
    if not items:
        raise ValidationError(f"{param_name} must contain at least one item")
    if len(items) > max_items:
        raise ValidationError(f"{param_name} cannot contain more than {max_items} items (got {len(items)})")
    return items


class TransientNetworkError(DocsMCPError):
    """Custom exception for transient network errors after retries."""

    pass


def handle_http_errors(tool_name: str, is_read_only: bool = False, service_type: str | None = None):
    """
    A decorator to handle Google API HttpErrors and transient SSL errors in a standardized way.

    It wraps a tool function, lets engine errors (DocsMCPError) through untouched,
    converts HttpError into the matching APIError subclass, and wraps anything
    else in a generic APIError.

    If is_read_only is True, it will also catch ssl.SSLError and retry with
    exponential backoff. After exhausting retries, it raises a TransientNetworkError.

    Args:
        tool_name (str): The name of the tool being decorated (e.g., 'append_markdown').
        is_read_only (bool): If True, the operation is considered safe to retry on
                             transient network errors. Defaults to False.
        service_type (str): Optional. The Google service type (e.g., 'docs').
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            max_retries = 3
            base_delay = 1

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except ssl.SSLError as e:
                    if is_read_only and attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            f"SSL error in {tool_name} on attempt {attempt + 1}: {e}. Retrying in {delay} seconds..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(f"SSL error in {tool_name} on final attempt: {e}. Raising exception.")
                        raise TransientNetworkError(
                            f"A transient SSL error occurred in '{tool_name}' after {attempt + 1} attempts. "
                            "This is likely a temporary network or certificate issue. Please try again shortly."
                        ) from e
                except ValidationError as e:
                    logger.warning(f"Input error in {tool_name}: {e}")
                    raise
                except DocsMCPError as e:
                    logger.error(f"{type(e).__name__} in {tool_name}: {e}")
                    raise
                except HttpError as error:
                    logger.error(f"API error in {tool_name}: {error}", exc_info=True)
                    raise translate_http_error(error, f"API error in {tool_name}") from error
                except Exception as e:
                    message = f"An unexpected error occurred in {tool_name}: {e}"
                    logger.exception(message)
                    raise APIError(message) from e

        return wrapper

    return decorator
