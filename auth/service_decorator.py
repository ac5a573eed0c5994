"""
Service injection for MCP tools.

``require_google_service`` loads the caller's stored credentials, checks the
requested scope group, refreshes an expired token, and passes an authorized
``googleapiclient`` service as the tool's first argument. The ``service``
parameter is hidden from the tool's public signature.
"""

import asyncio
import functools
import inspect
import logging
from typing import Any

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from googleapiclient.discovery import build

from auth.credential_store import get_credential_store
from auth.scopes import resolve_scope_group
from core.errors import AuthenticationError, CredentialsNotFoundError

logger = logging.getLogger(__name__)

SERVICE_CONFIGS = {
    "docs": {"service": "docs", "version": "v1"},
}


def get_authenticated_google_service(
    service_name: str, version: str, user_google_email: str, required_scopes: list[str]
) -> Any:
    """
    Build an authorized API service for ``user_google_email``.

    Raises:
        CredentialsNotFoundError: If no credentials are stored for the user
        AuthenticationError: If the credentials lack the scopes or cannot be refreshed
    """
    store = get_credential_store()
    credentials = store.get_credential(user_google_email)
    if credentials is None:
        raise CredentialsNotFoundError(user_google_email)

    granted = set(credentials.scopes or [])
    if granted and not granted.intersection(required_scopes):
        raise AuthenticationError(
            f"Credentials for {user_google_email} lack the required scopes. Need one of: {required_scopes}"
        )

    if not credentials.valid:
        if not credentials.refresh_token:
            raise AuthenticationError(f"Credentials for {user_google_email} are expired and cannot be refreshed.")
        try:
            credentials.refresh(Request())
        except RefreshError as e:
            logger.error(f"Token refresh failed for {user_google_email}: {e}", exc_info=True)
            raise AuthenticationError(f"Token refresh failed for {user_google_email}: {e}") from e
        store.store_credential(user_google_email, credentials)
        logger.info(f"Refreshed credentials for {user_google_email}")

    return build(service_name, version, credentials=credentials, cache_discovery=False)


def require_google_service(service_type: str, scopes: str):
    """
    Inject an authenticated Google service into a tool.

    Args:
        service_type: Key of SERVICE_CONFIGS (e.g. "docs")
        scopes: Scope group name (e.g. "docs_read", "docs_write")
    """
    if service_type not in SERVICE_CONFIGS:
        raise ValueError(f"Unknown service type '{service_type}'")
    config = SERVICE_CONFIGS[service_type]
    required_scopes = resolve_scope_group(scopes)

    def decorator(func):
        original_signature = inspect.signature(func)
        params = list(original_signature.parameters.values())
        if not params or params[0].name != "service":
            raise TypeError(f"{func.__name__} must take 'service' as its first parameter")
        public_signature = original_signature.replace(parameters=params[1:])

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            bound = public_signature.bind(*args, **kwargs)
            user_google_email = bound.arguments.get("user_google_email")
            if not user_google_email:
                raise AuthenticationError(f"{func.__name__} requires user_google_email")

            service = await asyncio.to_thread(
                get_authenticated_google_service,
                config["service"],
                config["version"],
                user_google_email,
                required_scopes,
            )
            logger.debug(f"[{func.__name__}] {service_type} service ready for {user_google_email}")
            return await func(service, *args, **kwargs)

        wrapper.__signature__ = public_signature
        wrapper.__annotations__ = {k: v for k, v in func.__annotations__.items() if k != "service"}
        return wrapper

    return decorator
