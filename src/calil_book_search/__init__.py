"""
Calil Book Search MCP Server Package.

Resolves real-time lending availability of a book across Japanese public
libraries through the Calil API and exposes it as MCP tools.

Key Components:
- calil: the availability resolution engine (directory, poller, merger, facade)
- models: Pydantic models for areas, libraries and availability reports
- config: Configuration management with pydantic-settings
- tools: MCP tools (search_books, get_libraries_by_*)
- server: FastMCP server entry point
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
