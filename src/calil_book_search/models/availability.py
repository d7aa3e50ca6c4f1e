"""
Availability models for the Calil check API.

The check endpoint payload is validated into CheckResponse as soon as it is
decoded, so the poller and merger work over one fixed shape:

    {
        "session": "...",
        "continue": 0 | 1,
        "books": {
            "<isbn>": {
                "<systemid>": {
                    "status": "OK" | "Cache" | "Running" | "Error",
                    "libkey": {"<libkey>": "<lending status>"},
                    "reserveurl": "https://..."
                }
            }
        }
    }
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SystemStatus(str, Enum):
    """Per-system progress of a Calil availability check."""

    OK = "OK"
    CACHE = "Cache"
    RUNNING = "Running"
    ERROR = "Error"

    @classmethod
    def is_usable(cls, status: str) -> bool:
        """Only finished checks (fresh or cached) carry trustworthy data."""
        return status in (cls.OK.value, cls.CACHE.value)


class LendingStatus(str, Enum):
    """Lending status of one library's copy, as reported by Calil."""

    AVAILABLE = "貸出可"
    IN_COLLECTION = "蔵書あり"
    LIBRARY_USE_ONLY = "館内のみ"
    ON_LOAN = "貸出中"
    RESERVED = "予約中"
    IN_PREPARATION = "準備中"
    CLOSED = "休館中"
    NOT_HELD = "蔵書なし"
    NOT_APPLICABLE = "指定館ではない"
    UNKNOWN = "-"


class PollState(str, Enum):
    """States of the availability polling state machine."""

    INITIATED = "initiated"
    POLLING = "polling"
    SETTLED = "settled"
    TIMED_OUT = "timed_out"


class PollSession(BaseModel):
    """Server-issued continuation handle for an availability check."""

    session: str
    is_complete: bool

    model_config = ConfigDict(frozen=True)


class SystemAvailability(BaseModel):
    """Check result for one library system."""

    status: str = Field(default="", description="SystemStatus value; unknown values are kept verbatim")
    libkey: dict[str, str | None] = Field(default_factory=dict)
    reserveurl: str = ""

    @field_validator("status", mode="before")
    @classmethod
    def null_status_is_empty(cls, v):
        return "" if v is None else v

    @field_validator("libkey", mode="before")
    @classmethod
    def null_libkey_is_empty(cls, v):
        return {} if v is None else v

    @field_validator("reserveurl", mode="before")
    @classmethod
    def null_reserveurl_is_empty(cls, v):
        return "" if v is None else v


class CheckResponse(BaseModel):
    """Normalized payload of the check endpoint (initial call or continuation)."""

    session: str = ""
    continue_: int = Field(default=0, alias="continue", ge=0, le=1)
    books: dict[str, dict[str, SystemAvailability]] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("session", mode="before")
    @classmethod
    def null_session_is_empty(cls, v):
        return "" if v is None else v

    @field_validator("books", mode="before")
    @classmethod
    def null_books_is_empty(cls, v):
        return {} if v is None else v

    @property
    def poll_session(self) -> PollSession:
        return PollSession(session=self.session, is_complete=self.continue_ == 0)


class AvailabilityEntry(BaseModel):
    """Resolved status of one library's copy of an ISBN."""

    libid: str
    systemid: str
    libkey: str
    status: str = Field(..., description="LendingStatus value")
    reserve_url: str | None = None

    # Display supplements taken from the directory record
    formal: str = ""
    systemname: str = ""

    @property
    def is_available(self) -> bool:
        return self.status == LendingStatus.AVAILABLE.value


class AvailabilityReport(BaseModel):
    """Terminal output of one resolution."""

    isbn: str
    entries: list[AvailabilityEntry] = Field(default_factory=list)
    library_count: int = Field(
        default=0,
        ge=0,
        description="Number of libraries matched for the area; 0 means no library serves it",
    )

    @property
    def has_libraries(self) -> bool:
        return self.library_count > 0
