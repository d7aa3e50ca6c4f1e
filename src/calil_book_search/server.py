"""Calil Book Search MCP Server - FastMCP Implementation

Exposes real-time lending availability of Japanese public libraries (via the
Calil API) to MCP clients over the stdio transport.

Tools exposed:
- search_books: availability of one ISBN across a prefecture or city
- get_libraries_by_prefecture / get_libraries_by_city: library directory listings
"""

import logging
import signal
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from .calil.errors import ConfigurationError
from .config import ServerConfig, get_config
from .observability import initialize_observability
from .tools import all_tools
from .tools.common import close_search_service, get_search_service

logger = logging.getLogger(__name__)


def configure_logging(config: ServerConfig) -> None:
    """Send logs to stderr; stdout is reserved for the stdio transport."""
    logging.basicConfig(
        level=logging.DEBUG if config.debug else getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.debug:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(_server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Release the shared Calil HTTP client when the server stops."""
    try:
        yield {}
    finally:
        await close_search_service()


def create_server(config: ServerConfig) -> FastMCP:
    """Create the FastMCP instance and register all tools."""
    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        lifespan=lifespan,
        instructions=(
            "Calil Book Search MCP Server - checks whether a book can be borrowed at "
            "public libraries in Japan. Use search_books with an ISBN and a prefecture "
            "(optionally a city); use the get_libraries_* tools to browse libraries."
        ),
    )

    for tool in all_tools:
        logger.debug("Registering tool: %s", tool["name"])
        try:
            mcp.tool(
                name=tool["name"],
                description=tool["description"],
            )(tool["handler"])
        except Exception:
            logger.exception("Failed to register tool %s", tool["name"])
            raise

    logger.info("Registered %d tools", len(all_tools))
    return mcp


def run_stdio_server(mcp: FastMCP, config: ServerConfig) -> None:
    """Run the MCP server using stdio transport."""
    logger.info("Starting %s v%s on stdio transport", config.server_name, config.server_version)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info("MCP Server ready and waiting for connections...")
        mcp.run(transport="stdio")
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)


def main() -> None:
    """Main entry point for the MCP server.

    Called via ``python -m calil_book_search.server`` or the
    ``calil-book-search`` console script.
    """
    config = get_config()
    configure_logging(config)

    try:
        # The API key is validated once here; a missing key is fatal
        get_search_service(config)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)

    try:
        logger.info("=" * 60)
        logger.info("Calil Book Search MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        initialize_observability()
        mcp = create_server(config)

        if config.transport == "stdio":
            run_stdio_server(mcp, config)
        else:
            logger.error("Unsupported transport: %s", config.transport)
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
