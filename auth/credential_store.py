"""
Credential storage for the Google Docs MCP server.

Credentials are authorized-user JSON files, one per account, kept in the
configured credentials directory (``GOOGLE_MCP_CREDENTIALS_DIR``).
"""

import json
import logging
import os
from abc import ABC, abstractmethod

from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Abstract base class for credential storage."""

    @abstractmethod
    def get_credential(self, user_email: str) -> Credentials | None:
        """Get credentials for a user by email."""
        pass

    @abstractmethod
    def store_credential(self, user_email: str, credentials: Credentials) -> bool:
        """Store credentials for a user."""
        pass

    @abstractmethod
    def list_users(self) -> list[str]:
        pass


class LocalDirectoryCredentialStore(CredentialStore):
    """Credential store backed by ``<base_dir>/<email>.json`` files."""

    def __init__(self, base_dir: str | None = None):
        if base_dir is None:
            from core.config import get_settings

            base_dir = get_settings().credentials_dir
        self.base_dir: str = base_dir
        logger.info(f"LocalDirectoryCredentialStore initialized with base_dir: {base_dir}")

    def _get_credential_path(self, user_email: str) -> str:
        return os.path.join(self.base_dir, f"{user_email}.json")

    def get_credential(self, user_email: str) -> Credentials | None:
        creds_path = self._get_credential_path(user_email)
        if not os.path.exists(creds_path):
            logger.debug(f"No credential file found for {user_email} at {creds_path}")
            return None

        try:
            with open(creds_path) as f:
                info = json.load(f)
            credentials = Credentials.from_authorized_user_info(info, scopes=info.get("scopes"))
        except (OSError, json.JSONDecodeError, ValueError) as e:
            logger.error(f"Error loading credentials for {user_email} from {creds_path}: {e}")
            return None

        logger.debug(f"Loaded credentials for {user_email} from {creds_path}")
        return credentials

    def store_credential(self, user_email: str, credentials: Credentials) -> bool:
        """Write credentials as authorized-user JSON; returns False on I/O failure."""
        creds_path = self._get_credential_path(user_email)
        try:
            os.makedirs(self.base_dir, exist_ok=True)
            with open(creds_path, "w") as f:
                f.write(credentials.to_json())
        except OSError as e:
            logger.error(f"Error storing credentials for {user_email} to {creds_path}: {e}")
            return False
        logger.info(f"Stored credentials for {user_email} to {creds_path}")
        return True

    def list_users(self) -> list[str]:
        if not os.path.isdir(self.base_dir):
            return []
        return sorted(name[:-5] for name in os.listdir(self.base_dir) if name.endswith(".json"))


_credential_store: CredentialStore | None = None


def get_credential_store() -> CredentialStore:
    """Get the global credential store instance."""
    global _credential_store

    if _credential_store is None:
        _credential_store = LocalDirectoryCredentialStore()
        logger.info(f"Initialized credential store: {type(_credential_store).__name__}")

    return _credential_store


def set_credential_store(store: CredentialStore | None) -> None:
    """Set the global credential store instance (for testing)."""
    global _credential_store
    _credential_store = store
    logger.info(f"Set credential store: {type(store).__name__}")
