"""Unit tests for LocalDirectoryCredentialStore."""

import os
from datetime import datetime, timedelta

import pytest
from google.oauth2.credentials import Credentials

from auth.credential_store import (
    LocalDirectoryCredentialStore,
    get_credential_store,
    set_credential_store,
)
from auth.scopes import DOCS_READONLY_SCOPE, DOCS_WRITE_SCOPE


class TestLocalDirectoryCredentialStore:
    """Tests for LocalDirectoryCredentialStore."""

    @pytest.fixture
    def temp_creds_dir(self, tmp_path):
        """Create a temporary credentials directory."""
        creds_dir = tmp_path / "credentials"
        creds_dir.mkdir()
        return str(creds_dir)

    @pytest.fixture
    def store(self, temp_creds_dir):
        """Create a store instance with temp directory."""
        return LocalDirectoryCredentialStore(temp_creds_dir)

    @pytest.fixture
    def sample_credentials(self):
        """Create sample Google credentials."""
        return Credentials(
            token="ya29.test_access_token",
            refresh_token="1//test_refresh_token",
            token_uri="https://oauth2.googleapis.com/token",
            client_id="test_client_id.apps.googleusercontent.com",
            client_secret="test_client_secret",
            scopes=[DOCS_READONLY_SCOPE, DOCS_WRITE_SCOPE],
            expiry=datetime.utcnow() + timedelta(hours=1),
        )

    def test_store_and_retrieve_credentials(self, store, sample_credentials):
        """Credentials can be stored and retrieved."""
        user_email = "test@example.com"

        result = store.store_credential(user_email, sample_credentials)
        assert result is True

        retrieved = store.get_credential(user_email)
        assert retrieved is not None
        assert retrieved.token == sample_credentials.token
        assert retrieved.refresh_token == sample_credentials.refresh_token
        assert retrieved.client_id == sample_credentials.client_id
        assert retrieved.client_secret == sample_credentials.client_secret
        assert retrieved.scopes == sample_credentials.scopes

    def test_get_nonexistent_credential_returns_none(self, store):
        """Getting credentials for unknown user returns None."""
        assert store.get_credential("nonexistent@example.com") is None

    def test_corrupt_file_returns_none(self, store, temp_creds_dir):
        """A file that is not valid JSON is treated as missing."""
        with open(os.path.join(temp_creds_dir, "broken@example.com.json"), "w") as f:
            f.write("{not json")

        assert store.get_credential("broken@example.com") is None

    def test_incomplete_file_returns_none(self, store, temp_creds_dir):
        """Authorized-user info without a refresh token is rejected."""
        with open(os.path.join(temp_creds_dir, "partial@example.com.json"), "w") as f:
            f.write('{"token": "abc"}')

        assert store.get_credential("partial@example.com") is None

    def test_store_creates_missing_directory(self, tmp_path, sample_credentials):
        """The base directory is created on first write."""
        target = tmp_path / "nested" / "creds"
        store = LocalDirectoryCredentialStore(str(target))

        assert store.store_credential("new@example.com", sample_credentials) is True
        assert (target / "new@example.com.json").exists()

    def test_list_users_empty(self, store):
        """Empty store returns empty list."""
        assert store.list_users() == []

    def test_list_users_missing_directory(self, tmp_path):
        """A directory that does not exist yet lists no users."""
        store = LocalDirectoryCredentialStore(str(tmp_path / "absent"))
        assert store.list_users() == []

    def test_list_users_sorted(self, store, sample_credentials, temp_creds_dir):
        """Users are listed by email, sorted, ignoring non-JSON files."""
        store.store_credential("zed@example.com", sample_credentials)
        store.store_credential("amy@example.com", sample_credentials)
        with open(os.path.join(temp_creds_dir, "notes.txt"), "w") as f:
            f.write("ignore me")

        assert store.list_users() == ["amy@example.com", "zed@example.com"]

    def test_overwrite_credentials(self, store, sample_credentials):
        """Storing again replaces the previous token."""
        user_email = "test@example.com"
        store.store_credential(user_email, sample_credentials)

        updated = Credentials(
            token="ya29.new_token",
            refresh_token=sample_credentials.refresh_token,
            token_uri=sample_credentials.token_uri,
            client_id=sample_credentials.client_id,
            client_secret=sample_credentials.client_secret,
            scopes=sample_credentials.scopes,
        )
        store.store_credential(user_email, updated)

        assert store.get_credential(user_email).token == "ya29.new_token"


class TestGlobalCredentialStore:
    """Tests for the process-wide store accessor."""

    def test_set_and_get(self, tmp_path):
        store = LocalDirectoryCredentialStore(str(tmp_path))
        set_credential_store(store)
        try:
            assert get_credential_store() is store
        finally:
            set_credential_store(None)

    def test_default_uses_settings_directory(self, container):
        set_credential_store(None)
        try:
            store = get_credential_store()
            assert isinstance(store, LocalDirectoryCredentialStore)
            assert store.base_dir == container.settings.credentials_dir
        finally:
            set_credential_store(None)
