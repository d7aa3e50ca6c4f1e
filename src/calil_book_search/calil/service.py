"""Resolution facade: ISBN + area in, availability report out.

Sequence for one resolution, strictly in order:
1. Directory lookup for the area
2. Check/continue polling across the distinct library systems
3. Merge of the settled payload with the directory
"""

import logging

import httpx

from ..config import ServerConfig, get_config
from ..models.availability import AvailabilityReport
from ..models.library import Area, LibraryRecord, system_ids
from .directory import LibraryDirectoryClient
from .errors import ValidationError
from .http import build_async_client
from .merger import merge_availability
from .poller import AvailabilityPoller

logger = logging.getLogger(__name__)


class BookSearchService:
    """Entry point of the availability resolution engine.

    Owns one ``httpx.AsyncClient``; use it as an async context manager or
    call :meth:`aclose` when done. Concurrent resolutions on one service
    share nothing but the client and the read-only credential.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        application_key = config.require_application_key()
        self._client = build_async_client(config, transport=transport)
        self.directory = LibraryDirectoryClient(self._client, application_key)
        self.poller = AvailabilityPoller(
            self._client,
            application_key,
            max_rounds=config.poll_max_rounds,
            interval_seconds=config.poll_interval_seconds,
        )

    async def __aenter__(self) -> "BookSearchService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_libraries(self, area: Area) -> list[LibraryRecord]:
        return await self.directory.fetch_libraries(area)

    async def search_book_in_area(self, isbn: str, area: Area) -> AvailabilityReport:
        """Resolve lending availability of ``isbn`` across the libraries of ``area``.

        An area without libraries yields an empty report with
        ``library_count == 0`` and no check request is made. Errors from any
        stage propagate unchanged.

        Raises:
            ValidationError: If ``isbn`` is blank.
            UpstreamError: On a failed directory or check request.
            PollTimeoutError: If the check does not settle within the round budget.
            DecodeError: On a malformed response body.
        """
        if not isinstance(isbn, str) or not isbn.strip():
            raise ValidationError("ISBN must be a non-empty string")
        isbn = isbn.strip()

        libraries = await self.directory.fetch_libraries(area)
        if not libraries:
            logger.info("No libraries found for %s %s", area.prefecture, area.city or "")
            return AvailabilityReport(isbn=isbn, library_count=0)

        systems = system_ids(libraries)
        raw = await self.poller.resolve_availability(isbn, systems)
        return merge_availability(raw, libraries, isbn)


async def search_book_in_area(
    isbn: str,
    area: Area,
    config: ServerConfig | None = None,
) -> AvailabilityReport:
    """One-shot helper that opens a service, resolves, and closes it."""
    async with BookSearchService(config or get_config()) as service:
        return await service.search_book_in_area(isbn, area)
