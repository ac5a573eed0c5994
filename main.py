"""
Entry point for the Google Docs MCP server.

Configures logging from the engine settings, imports the tool modules so
they register on the shared FastMCP server, and runs it.
"""

import argparse
import logging

from core.container import get_container, reset_container
from core.server import SERVER_NAME, configure_logging, server

logger = logging.getLogger(__name__)

TOOL_MODULES = ("gdocs.writing", "gdocs.tables", "gdocs.history", "gdocs.reading")


def register_tools() -> None:
    import importlib

    for module_name in TOOL_MODULES:
        importlib.import_module(module_name)
        logger.debug(f"Registered tools from {module_name}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Google Docs batch-mutation MCP server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
        help="Transport mode: stdio (default) or streamable-http",
    )
    args = parser.parse_args()

    settings = get_container().settings
    configure_logging(settings.log_level)
    register_tools()
    logger.info(f"Starting {SERVER_NAME} ({args.transport}), chunk size {settings.batch_chunk_size}")

    try:
        server.run(transport=args.transport)
    finally:
        reset_container()
        logger.info("Server stopped, snapshot history cleared")


if __name__ == "__main__":
    main()
