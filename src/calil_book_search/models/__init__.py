"""
Calil Book Search Models.

Pydantic models for the entities of one availability resolution:
- Area, LibraryRecord: library directory lookup
- CheckResponse, SystemAvailability, PollSession: the check API payload
- AvailabilityEntry, AvailabilityReport: the merged result
"""

from .availability import (
    AvailabilityEntry,
    AvailabilityReport,
    CheckResponse,
    LendingStatus,
    PollSession,
    PollState,
    SystemAvailability,
    SystemStatus,
)
from .library import Area, LibraryRecord, system_ids

__all__ = [
    "Area",
    "AvailabilityEntry",
    "AvailabilityReport",
    "CheckResponse",
    "LendingStatus",
    "LibraryRecord",
    "PollSession",
    "PollState",
    "SystemAvailability",
    "SystemStatus",
    "system_ids",
]
