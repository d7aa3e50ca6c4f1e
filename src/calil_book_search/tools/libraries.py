"""
Library directory tools for the Calil Book Search MCP Server.

- get_libraries_by_prefecture: list the libraries of a prefecture
- get_libraries_by_city: list the libraries of a city within a prefecture

Listings are truncated to the configured display limit; the full count is
always reported so the client knows when a listing is partial.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..calil.errors import BookSearchError
from ..calil.service import BookSearchService
from ..config import get_config
from ..models.library import Area, LibraryRecord
from ..observability import trace_tool
from .common import (
    book_search_error_response,
    error_response,
    get_search_service,
    invalid_arguments_response,
    text_response,
)

logger = logging.getLogger(__name__)


class PrefectureLibrariesInput(BaseModel):
    """Input schema for the get_libraries_by_prefecture tool."""

    prefecture: str = Field(
        ...,
        description="Prefecture name in Japanese",
        min_length=1,
        examples=["東京都", "大阪府"],
    )

    @field_validator("prefecture")
    @classmethod
    def prefecture_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("prefecture must not be blank")
        return v


class CityLibrariesInput(PrefectureLibrariesInput):
    """Input schema for the get_libraries_by_city tool."""

    city: str = Field(
        ...,
        description="City name in Japanese",
        min_length=1,
        examples=["千葉市", "渋谷区"],
    )

    @field_validator("city")
    @classmethod
    def city_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("city must not be blank")
        return v


def format_libraries(libraries: list[LibraryRecord], area: Area, limit: int) -> dict[str, Any]:
    area_label = f"{area.prefecture}{area.city or ''}"
    if not libraries:
        return text_response(
            f"No libraries found in {area_label}.",
            {**area.model_dump(), "library_count": 0, "libraries": []},
        )

    shown = libraries[:limit]
    message = f"Found {len(libraries)} libraries in {area_label}"
    if len(libraries) > len(shown):
        message += f" (showing the first {len(shown)})"

    lines = [message + "."]
    lines.extend(f"- {lib.formal or lib.short} [{lib.systemid}] {lib.address}" for lib in shown)

    return text_response(
        "\n".join(lines),
        {
            **area.model_dump(),
            "library_count": len(libraries),
            "libraries": [lib.to_summary() for lib in shown],
        },
    )


async def _list_libraries(
    area: Area,
    lookup: Callable[[BookSearchService], Awaitable[list[LibraryRecord]]],
) -> dict[str, Any]:
    try:
        libraries = await lookup(get_search_service())
    except BookSearchError as e:
        logger.warning("Library lookup for %s failed: %s: %s", area, type(e).__name__, e)
        return book_search_error_response(e)
    except Exception as e:
        logger.exception("Unexpected error while listing libraries")
        return error_response(f"An unexpected error occurred: {e!s}", "unknown")

    return format_libraries(libraries, area, get_config().max_display_libraries)


@trace_tool("get_libraries_by_prefecture")
async def get_libraries_by_prefecture_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the get_libraries_by_prefecture tool."""
    try:
        params = PrefectureLibrariesInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_response(e)
    return await _list_libraries(
        Area(prefecture=params.prefecture),
        lambda service: service.directory.fetch_libraries_by_prefecture(params.prefecture),
    )


@trace_tool("get_libraries_by_city")
async def get_libraries_by_city_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the get_libraries_by_city tool.

    The city match is best-effort: libraries are kept when their address
    mentions the city name.
    """
    try:
        params = CityLibrariesInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_response(e)
    area = Area(prefecture=params.prefecture, city=params.city)
    return await _list_libraries(area, lambda service: service.fetch_libraries(area))


get_libraries_by_prefecture = {
    "name": "get_libraries_by_prefecture",
    "description": "List public libraries in a Japanese prefecture (e.g. 東京都, 千葉県).",
    "inputSchema": PrefectureLibrariesInput.model_json_schema(),
    "handler": get_libraries_by_prefecture_handler,
}

get_libraries_by_city = {
    "name": "get_libraries_by_city",
    "description": (
        "List public libraries in a city of a Japanese prefecture. "
        "Matching is by address text and may include neighbouring entries."
    ),
    "inputSchema": CityLibrariesInput.model_json_schema(),
    "handler": get_libraries_by_city_handler,
}
