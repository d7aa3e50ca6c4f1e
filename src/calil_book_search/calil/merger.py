"""Merging of check results with the library directory."""

import logging
from collections.abc import Sequence

from ..models.availability import (
    AvailabilityEntry,
    AvailabilityReport,
    CheckResponse,
    LendingStatus,
    SystemAvailability,
    SystemStatus,
)
from ..models.library import LibraryRecord, system_ids

logger = logging.getLogger(__name__)


def build_reserve_url(template: str, isbn: str, systemid: str, libkey: str) -> str:
    """Fill the ``{isbn}``, ``{systemid}`` and ``{libkey}`` placeholders verbatim."""
    return (
        template.replace("{isbn}", isbn)
        .replace("{systemid}", systemid)
        .replace("{libkey}", libkey)
    )


def _entries_for_system(
    isbn: str,
    systemid: str,
    system: SystemAvailability,
    libraries: dict[tuple[str, str], LibraryRecord],
) -> list[AvailabilityEntry]:
    entries = []
    for libkey, raw_status in system.libkey.items():
        library = libraries.get((systemid, libkey))
        if library is None:
            # Directory and check API keys drift apart after area changes
            logger.debug("No directory record for %s/%s, skipping", systemid, libkey)
            continue

        status = raw_status or LendingStatus.UNKNOWN.value

        reserve_url = None
        if system.reserveurl and status != LendingStatus.NOT_HELD.value:
            reserve_url = build_reserve_url(system.reserveurl, isbn, systemid, libkey)

        entries.append(
            AvailabilityEntry(
                libid=library.libid,
                systemid=systemid,
                libkey=libkey,
                status=status,
                reserve_url=reserve_url,
                formal=library.formal or library.short,
                systemname=library.systemname,
            )
        )
    return entries


def merge_availability(
    raw: CheckResponse,
    libraries: Sequence[LibraryRecord],
    isbn: str,
) -> AvailabilityReport:
    """Join a settled check payload with the libraries fetched for the area.

    Systems are visited in directory order and libraries in payload order.
    Systems whose check is not ``OK``/``Cache`` are left out rather than
    guessed at; an ISBN missing from the payload yields an empty report.
    """
    report = AvailabilityReport(isbn=isbn, library_count=len(libraries))

    systems = raw.books.get(isbn)
    if systems is None:
        logger.info("Check payload has no entry for %s", isbn)
        return report

    by_key = {(library.systemid, library.libkey): library for library in libraries}

    for systemid in system_ids(libraries):
        system = systems.get(systemid)
        if system is None:
            continue
        if not SystemStatus.is_usable(system.status):
            logger.info("Skipping system %s with status %s", systemid, system.status)
            continue
        report.entries.extend(_entries_for_system(isbn, systemid, system, by_key))

    logger.info(
        "Resolved %d availability entries for %s across %d libraries",
        len(report.entries),
        isbn,
        len(libraries),
    )
    return report
