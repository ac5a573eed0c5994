import logging

from fastmcp import FastMCP

logger = logging.getLogger(__name__)

SERVER_NAME = "gdocs_engine"

server = FastMCP(name=SERVER_NAME)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the server process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.debug(f"Logging configured at {level}")
