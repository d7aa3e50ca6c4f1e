"""
Shared helpers for the Calil MCP tools.

Tool handlers never raise: every failure is turned into an MCP error
response here, tagged with the failure kind and whether retrying may help,
so the client (usually an LLM) can decide what to do next.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..calil.errors import (
    BookSearchError,
    ConfigurationError,
    DecodeError,
    PollTimeoutError,
    UpstreamError,
    ValidationError,
)
from ..calil.service import BookSearchService
from ..config import ServerConfig, get_config

logger = logging.getLogger(__name__)


class _ServiceStore:
    """Internal storage for the process-wide search service."""

    _instance: BookSearchService | None = None


def get_search_service(config: ServerConfig | None = None) -> BookSearchService:
    """Get or create the shared BookSearchService.

    The service, its HTTP client and the credential check are created once
    per process; every tool call reuses them.
    """
    if _ServiceStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ServiceStore._instance = BookSearchService(config or get_config())  # type: ignore[reportPrivateUsage]
    return _ServiceStore._instance  # type: ignore[reportPrivateUsage]


async def close_search_service() -> None:
    """Close and forget the shared service (server shutdown and tests)."""
    service = _ServiceStore._instance  # type: ignore[reportPrivateUsage]
    _ServiceStore._instance = None  # type: ignore[reportPrivateUsage]
    if service is not None:
        await service.aclose()


def text_response(message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    response: dict[str, Any] = {"content": [{"type": "text", "text": message}]}
    if data is not None:
        response["data"] = data
    return response


def error_response(message: str, error_type: str, *, retryable: bool = False) -> dict[str, Any]:
    return {
        "isError": True,
        "content": [{"type": "text", "text": message}],
        "error_type": error_type,
        "retryable": retryable,
    }


def invalid_arguments_response(error: PydanticValidationError) -> dict[str, Any]:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
        for err in error.errors()
    )
    return error_response(f"Invalid arguments: {details}", "validation")


def book_search_error_response(error: BookSearchError) -> dict[str, Any]:
    """Map an engine error onto a kind-specific MCP error response."""
    if isinstance(error, ValidationError):
        return error_response(f"Invalid request: {error}", "validation")
    if isinstance(error, PollTimeoutError):
        return error_response(
            f"The library availability check is still running after "
            f"{error.rounds_attempted} polling rounds. Please try again shortly.",
            "timeout",
            retryable=True,
        )
    if isinstance(error, UpstreamError):
        return error_response(
            f"The Calil library API is unavailable: {error}",
            "upstream",
            retryable=error.retryable,
        )
    if isinstance(error, DecodeError):
        return error_response(f"The Calil library API returned malformed data: {error}", "decode")
    if isinstance(error, ConfigurationError):
        return error_response(f"Server is not configured: {error}", "configuration")
    return error_response(str(error), "unknown")
