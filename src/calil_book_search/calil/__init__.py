"""
Calil API integration.

The availability resolution engine, leaf-first:
- decoder: JSON / JSONP response decoding
- directory: library lookup by prefecture and city
- poller: the check/continue polling state machine
- merger: joins check results with the library directory
- service: the BookSearchService facade sequencing the above
"""

from .errors import (
    BookSearchError,
    ConfigurationError,
    DecodeError,
    PollTimeoutError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "BookSearchError",
    "ConfigurationError",
    "DecodeError",
    "PollTimeoutError",
    "UpstreamError",
    "ValidationError",
]
