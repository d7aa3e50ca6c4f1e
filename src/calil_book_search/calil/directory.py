"""Library directory client for the Calil ``/library`` endpoint.

The endpoint answers either with a flat array of library records or with an
object keyed by system ID whose values hold a per-library-key mapping. Both
shapes are normalized here into ``list[LibraryRecord]`` so nothing downstream
has to branch on the payload shape again.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..models.library import Area, LibraryRecord
from .decoder import decode
from .errors import DecodeError
from .http import get_text

logger = logging.getLogger(__name__)

LIBRARY_PATH = "/library"

_STRING_FIELDS = (
    "libid",
    "systemid",
    "systemname",
    "libkey",
    "formal",
    "short",
    "address",
    "pref",
    "city",
    "post",
    "tel",
    "geocode",
    "category",
    "isil",
    "url_pc",
)


def _to_record(data: Any, **defaults: str) -> LibraryRecord:
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a library object, got {type(data).__name__}")

    fields: dict[str, Any] = {}
    for name in _STRING_FIELDS:
        value = data.get(name)
        if value is None or value == "":
            value = defaults.get(name, "")
        fields[name] = str(value)

    faid = data.get("faid")
    fields["faid"] = None if faid is None else str(faid)

    try:
        return LibraryRecord(**fields)
    except PydanticValidationError as e:
        raise DecodeError(f"Invalid library record: {e}") from e


def normalize_libraries(payload: Any) -> list[LibraryRecord]:
    """Normalize a decoded ``/library`` payload into library records.

    Raises:
        DecodeError: If the payload is neither of the two known shapes.
    """
    if isinstance(payload, list):
        return [_to_record(item) for item in payload]

    if not isinstance(payload, dict):
        raise DecodeError(f"Unexpected library payload type: {type(payload).__name__}")

    records: list[LibraryRecord] = []
    for systemid, system in payload.items():
        if not isinstance(system, dict):
            raise DecodeError(f"Unexpected entry for system {systemid!r}")

        nested = system.get("libkey")
        if isinstance(nested, dict):
            libraries = nested
            systemname = system.get("systemname") or ""
        else:
            # The value is the per-library mapping itself
            libraries = system
            systemname = ""

        for libkey, library in libraries.items():
            records.append(
                _to_record(
                    library,
                    systemid=str(systemid),
                    systemname=str(systemname),
                    libkey=str(libkey),
                )
            )
    return records


def filter_by_city(libraries: list[LibraryRecord], city: str) -> list[LibraryRecord]:
    """Keep libraries whose address mentions ``city``.

    This is a best-effort substring match on the address text, not an exact
    administrative match: a city name that appears inside another address
    (a ward or a street named after it) is kept as well.
    """
    return [library for library in libraries if city in library.address]


class LibraryDirectoryClient:
    """Resolves an Area into the libraries that serve it."""

    def __init__(self, client: httpx.AsyncClient, application_key: str):
        self._client = client
        self._application_key = application_key

    async def fetch_libraries(self, area: Area) -> list[LibraryRecord]:
        """Fetch the libraries of ``area``.

        When the area names a city, the upstream city filter is applied and
        the result is narrowed again client-side with :func:`filter_by_city`,
        because Calil does not guarantee an exact city match. The narrowing
        is best-effort.

        Raises:
            UpstreamError: On a non-success response or transport failure.
            DecodeError: If the body cannot be decoded or normalized.
        """
        params: dict[str, str] = {
            "appkey": self._application_key,
            "format": "json",
            "pref": area.prefecture,
        }
        if area.city:
            params["city"] = area.city

        text = await get_text(self._client, LIBRARY_PATH, params)
        libraries = normalize_libraries(decode(text))
        logger.info("Fetched %d library records for %s", len(libraries), area.prefecture)

        if area.city:
            libraries = filter_by_city(libraries, area.city)
            logger.info("%d libraries remain after filtering by %s", len(libraries), area.city)

        return libraries

    async def fetch_libraries_by_prefecture(self, prefecture: str) -> list[LibraryRecord]:
        return await self.fetch_libraries(Area(prefecture=prefecture))
