"""
Engine configuration for the Google Docs MCP server.

Settings are read once from the environment, validated, and then shared
through the dependency container (see core.container).
"""

import logging
import os
from dataclasses import dataclass, field

from core.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_CHUNK_SIZE = 50
DEFAULT_MAX_SNAPSHOTS = 10
DEFAULT_MAX_TABLE_PHASES = 10
DEFAULT_MAX_CELL_EDITS = 500
DEFAULT_MAX_IMAGE_INSERTS = 50


def _default_credentials_dir() -> str:
    env_dir = os.getenv("GOOGLE_MCP_CREDENTIALS_DIR")
    if env_dir:
        return env_dir
    home_dir = os.path.expanduser("~")
    if home_dir and home_dir != "~":
        return os.path.join(home_dir, ".config", "gdocs-engine", "credentials")
    return os.path.join(os.getcwd(), ".credentials")


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer, got '{raw}'") from e


@dataclass
class EngineSettings:
    """
    Tunable limits for batch execution, history and tools.

    batch_chunk_size bounds a single batchUpdate call, max_snapshots bounds
    each per-document undo stack, and max_table_phases bounds the markdown
    table work queue.
    """

    batch_chunk_size: int = DEFAULT_BATCH_CHUNK_SIZE
    max_snapshots: int = DEFAULT_MAX_SNAPSHOTS
    max_table_phases: int = DEFAULT_MAX_TABLE_PHASES
    max_cell_edits: int = DEFAULT_MAX_CELL_EDITS
    max_image_inserts: int = DEFAULT_MAX_IMAGE_INSERTS
    log_level: str = "INFO"
    credentials_dir: str = field(default_factory=_default_credentials_dir)

    def __post_init__(self) -> None:
        for name in (
            "batch_chunk_size",
            "max_snapshots",
            "max_table_phases",
            "max_cell_edits",
            "max_image_inserts",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValidationError(f"{name} must be a positive integer, got {value!r}")
        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from GDOCS_* environment variables."""
        settings = cls(
            batch_chunk_size=_int_from_env("GDOCS_BATCH_CHUNK_SIZE", DEFAULT_BATCH_CHUNK_SIZE),
            max_snapshots=_int_from_env("GDOCS_MAX_SNAPSHOTS", DEFAULT_MAX_SNAPSHOTS),
            max_table_phases=_int_from_env("GDOCS_MAX_TABLE_PHASES", DEFAULT_MAX_TABLE_PHASES),
            max_cell_edits=_int_from_env("GDOCS_MAX_CELL_EDITS", DEFAULT_MAX_CELL_EDITS),
            max_image_inserts=_int_from_env("GDOCS_MAX_IMAGE_INSERTS", DEFAULT_MAX_IMAGE_INSERTS),
            log_level=os.getenv("GDOCS_LOG_LEVEL", "INFO"),
            credentials_dir=_default_credentials_dir(),
        )
        logger.debug(f"Loaded engine settings: {settings}")
        return settings


def get_settings() -> EngineSettings:
    """Return the settings held by the global container."""
    from core.container import get_container

    return get_container().settings
