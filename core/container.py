"""
Dependency Injection Container for the Google Docs MCP server.

Holds the process-wide engine settings and the snapshot store, so tools
receive them by reference instead of reaching for module-level state, and
tests can swap either one.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from core.config import EngineSettings

logger = logging.getLogger(__name__)


@runtime_checkable
class SnapshotStoreProtocol(Protocol):
    """Protocol for per-document undo/redo snapshot storage."""

    def push_undo(self, snapshot: Any, clear_redo: bool = True) -> None:
        """Push a snapshot onto the undo stack, clearing redo by default."""
        ...

    def push_redo(self, snapshot: Any) -> None:
        """Push a snapshot onto the redo stack."""
        ...

    def can_undo(self, document_id: str) -> bool: ...

    def can_redo(self, document_id: str) -> bool: ...

    def pop_undo(self, document_id: str) -> Any:
        """Pop the most recent undo snapshot."""
        ...

    def pop_redo(self, document_id: str) -> Any:
        """Pop the most recent redo snapshot."""
        ...

    def list_snapshots(self, document_id: str) -> list[dict[str, Any]]:
        """List snapshots in both stacks."""
        ...

    def clear(self) -> None:
        """Drop all stored history."""
        ...


@dataclass
class Container:
    """
    Dependency injection container.

    Holds the engine settings and the snapshot store. If not provided, the
    settings come from the environment and a fresh SnapshotStore is built.
    """

    settings: EngineSettings | None = None
    snapshot_store: SnapshotStoreProtocol | None = None

    def __post_init__(self) -> None:
        """Initialize with defaults if not provided."""
        if self.settings is None:
            self.settings = EngineSettings.from_env()

        if self.snapshot_store is None:
            from gdocs.snapshots import SnapshotStore

            self.snapshot_store = SnapshotStore(max_snapshots=self.settings.max_snapshots)


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """
    Get the global container instance.

    Creates a new container with default implementations if none exists.

    Returns:
        The global Container instance.
    """
    global _container
    if _container is None:
        _container = Container()
        logger.debug("Initialized default dependency container")
    return _container


def set_container(container: Container) -> None:
    """
    Set the global container instance.

    Use this for testing to inject mock implementations.

    Args:
        container: The container to use as the global instance.
    """
    global _container
    _container = container
    logger.debug("Set custom dependency container")


def reset_container() -> None:
    """
    Tear down the global container.

    Clears any snapshot history it holds; use this at shutdown and between tests.
    """
    global _container
    if _container is not None and _container.snapshot_store is not None:
        _container.snapshot_store.clear()
    _container = None
    logger.debug("Reset dependency container")
