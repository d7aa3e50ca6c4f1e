"""
MCP Tools for the Calil Book Search Server.

Each tool is a dictionary with its name, description, JSON Schema and async
handler; the server registers everything in ``all_tools``.
"""

from .libraries import get_libraries_by_city, get_libraries_by_prefecture
from .search import search_books

all_tools = [
    search_books,
    get_libraries_by_prefecture,
    get_libraries_by_city,
]

__all__ = [
    "all_tools",
    "get_libraries_by_city",
    "get_libraries_by_prefecture",
    "search_books",
]
