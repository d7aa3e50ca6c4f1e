"""Error taxonomy for the availability resolution engine.

Every failure the engine can report has its own type so the tool layer can
decide between retrying (timeouts, upstream 5xx), failing fast (validation,
decode) and reporting an upstream outage.
"""


class BookSearchError(Exception):
    """Base exception for book availability resolution."""

    retryable: bool = False


class ConfigurationError(BookSearchError):
    """Raised at startup when required configuration is missing."""


class ValidationError(BookSearchError, ValueError):
    """Raised when the ISBN or area is missing or invalid, before any network call."""


class DecodeError(BookSearchError):
    """Raised when a Calil response body is not the JSON document we expect."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        # Only a prefix is kept so logs stay readable
        self.raw = raw[:200] if raw is not None else None


class UpstreamError(BookSearchError):
    """Raised on a non-success HTTP response or a transport failure.

    ``status`` is ``None`` when no response was received at all.
    """

    def __init__(self, status: int | None, message: str | None = None):
        self.status = status
        if message is None:
            message = f"Calil API call failed with status: {status}"
        super().__init__(message)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status is None or self.status >= 500


class PollTimeoutError(BookSearchError):
    """Raised when the check session is still running after the round budget."""

    retryable = True

    def __init__(self, session: str, rounds_attempted: int):
        self.session = session
        self.rounds_attempted = rounds_attempted
        super().__init__(
            f"Availability check did not complete after {rounds_attempted} polling rounds"
        )
