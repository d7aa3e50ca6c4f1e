"""
search_books tool for the Calil Book Search MCP Server.

Looks up lending availability of one book across the public libraries of a
prefecture (optionally narrowed to a city).

MCP TOOL STRUCTURE:
- Input: SearchBooksInput, validated from the raw tools/call arguments
- Handler: resolves the ISBN, runs BookSearchService, formats the report
- Output: content array with a text summary plus structured data
"""

import logging
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..calil.errors import BookSearchError
from ..config import get_config
from ..models.availability import AvailabilityReport
from ..models.library import Area
from ..observability import trace_tool
from .common import (
    book_search_error_response,
    error_response,
    get_search_service,
    invalid_arguments_response,
    text_response,
)

logger = logging.getLogger(__name__)

# Runs of digits, hyphens and spaces ending in a digit or X
_ISBN_CANDIDATE = re.compile(r"[0-9][0-9\- ]{8,20}[0-9Xx]|[0-9]{9}[Xx]")


# =============================================================================
# ISBN EXTRACTION
# =============================================================================

def _valid_isbn10(digits: str) -> bool:
    if not re.fullmatch(r"[0-9]{9}[0-9X]", digits):
        return False
    total = sum((10 - i) * (10 if c == "X" else int(c)) for i, c in enumerate(digits))
    return total % 11 == 0


def _valid_isbn13(digits: str) -> bool:
    if not re.fullmatch(r"97[89][0-9]{10}", digits):
        return False
    total = sum(int(c) * (1 if i % 2 == 0 else 3) for i, c in enumerate(digits))
    return total % 10 == 0


def normalize_isbn(value: str) -> str | None:
    """Strip separators and return the ISBN if its check digit is valid."""
    digits = re.sub(r"[\s\-]", "", value).upper()
    if digits.startswith("ISBN"):
        digits = digits[4:].lstrip(":")
    if _valid_isbn13(digits) or _valid_isbn10(digits):
        return digits
    return None


def extract_isbn(text: str) -> str | None:
    """Find the first valid ISBN-10 or ISBN-13 in free text.

    Accepts forms such as ``ISBN:4299062647``, ``978-4-299-06264-2`` or a
    bare number embedded in a sentence.
    """
    for match in _ISBN_CANDIDATE.finditer(text):
        candidate = match.group()
        for part in (candidate, *candidate.split()):
            isbn = normalize_isbn(part)
            if isbn:
                return isbn
    return None


# =============================================================================
# INPUT VALIDATION SCHEMA
# =============================================================================

class SearchBooksInput(BaseModel):
    """Input schema for the search_books tool."""

    query: str | None = Field(
        default=None,
        description="Free-text query containing the ISBN to look up",
        max_length=500,
        examples=["ISBN:4299062647", "978-4-299-06264-2 を探して"],
    )

    isbn: str | None = Field(
        default=None,
        description="ISBN-10 or ISBN-13; takes precedence over the query",
        examples=["4299062647", "9784299062642"],
    )

    prefecture: str = Field(
        ...,
        description="Prefecture name in Japanese",
        min_length=1,
        examples=["千葉県", "東京都"],
    )

    city: str | None = Field(
        default=None,
        description="City name used to narrow the prefecture",
        examples=["千葉市"],
    )

    @field_validator("query", "isbn", "city")
    @classmethod
    def strip_whitespace(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v

    @field_validator("prefecture")
    @classmethod
    def prefecture_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("prefecture must not be blank")
        return v

    def resolve_isbn(self) -> str | None:
        if self.isbn:
            return normalize_isbn(self.isbn)
        if self.query:
            return extract_isbn(self.query)
        return None

    def to_area(self) -> Area:
        return Area(prefecture=self.prefecture, city=self.city)


# =============================================================================
# TOOL RESPONSE FORMATTING
# =============================================================================

def format_report(report: AvailabilityReport, area: Area, limit: int) -> dict[str, Any]:
    """Render a report, listing at most ``limit`` libraries."""
    area_label = f"{area.prefecture}{area.city or ''}"

    if not report.has_libraries:
        return text_response(
            f"No libraries found in {area_label}.",
            {"isbn": report.isbn, "area": area.model_dump(), "library_count": 0, "results": []},
        )

    shown = report.entries[:limit]
    if not report.entries:
        message = f"No library in {area_label} reported holdings for ISBN {report.isbn}."
    else:
        available = sum(1 for entry in report.entries if entry.is_available)
        message = (
            f"ISBN {report.isbn}: {len(report.entries)} library(ies) in {area_label} "
            f"reported a status, {available} available for lending."
        )
        if len(report.entries) > len(shown):
            message += f" Showing the first {len(shown)}."

    lines = [message]
    for entry in shown:
        line = f"- {entry.formal or entry.libkey} ({entry.systemname}): {entry.status}"
        if entry.reserve_url:
            line += f" {entry.reserve_url}"
        lines.append(line)

    return text_response(
        "\n".join(lines),
        {
            "isbn": report.isbn,
            "area": area.model_dump(),
            "library_count": report.library_count,
            "total_results": len(report.entries),
            "results": [entry.model_dump() for entry in shown],
        },
    )


# =============================================================================
# TOOL HANDLER IMPLEMENTATION
# =============================================================================

@trace_tool("search_books")
async def search_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the search_books tool.

    Returns:
        Structured response with availability results or error information
    """
    try:
        params = SearchBooksInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid search_books arguments: %s", e)
        return invalid_arguments_response(e)

    isbn = params.resolve_isbn()
    if isbn is None:
        return error_response(
            "Please provide a valid ISBN-10 or ISBN-13 via 'isbn' or inside 'query'.",
            "validation",
        )

    area = params.to_area()
    logger.info("search_books: isbn=%s area=%s %s", isbn, area.prefecture, area.city or "")

    try:
        service = get_search_service()
        report = await service.search_book_in_area(isbn, area)
    except BookSearchError as e:
        logger.warning("search_books failed: %s: %s", type(e).__name__, e)
        return book_search_error_response(e)
    except Exception as e:
        logger.exception("Unexpected error in search_books tool")
        return error_response(f"An unexpected error occurred: {e!s}", "unknown")

    return format_report(report, area, get_config().max_display_libraries)


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

search_books = {
    "name": "search_books",
    "description": (
        "Check whether a book (by ISBN) can be borrowed at public libraries in a "
        "Japanese prefecture, optionally narrowed to a city. Returns each library's "
        "lending status and a reservation link when one is available."
    ),
    "inputSchema": SearchBooksInput.model_json_schema(),
    "handler": search_books_handler,
}
