"""Shared pytest fixtures for the Google Docs engine tests."""

import tempfile

import pytest
from fake_docs import FakeDocsService

from core.config import EngineSettings
from core.container import Container, reset_container, set_container
from gdocs.client import DocsClient
from gdocs.snapshots import SnapshotStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def settings():
    """Engine settings with defaults (chunk size 50, 10 snapshots, 10 phases)."""
    return EngineSettings(credentials_dir="/tmp/unused-credentials")


@pytest.fixture
def fake_service():
    """In-memory Docs service with one empty document 'doc1'."""
    service = FakeDocsService()
    service.add_document("doc1", title="Test Doc")
    return service


@pytest.fixture
def docs_client(fake_service):
    return DocsClient(fake_service)


@pytest.fixture
def container(settings):
    """Install a fresh container for the test and tear it down afterwards."""
    instance = Container(settings=settings, snapshot_store=SnapshotStore(max_snapshots=settings.max_snapshots))
    set_container(instance)
    yield instance
    reset_container()


@pytest.fixture
def env_override(monkeypatch):
    """Helper to override environment variables."""

    def _override(**kwargs):
        for key, value in kwargs.items():
            if value is None:
                monkeypatch.delenv(key, raising=False)
            else:
                monkeypatch.setenv(key, value)

    return _override
