"""Availability poller for the Calil ``/check`` endpoint.

Calil answers availability checks asynchronously. The first request starts a
check and returns a session; while ``continue`` is 1 the caller must wait and
reissue the request with only the session until the check settles:

    INITIATED --continue=0--> SETTLED
    INITIATED --continue=1--> POLLING --continue=0--> SETTLED
                              POLLING --budget exhausted--> TIMED_OUT

A settled session is never polled again.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..models.availability import CheckResponse, PollSession, PollState
from .decoder import decode
from .errors import DecodeError, PollTimeoutError
from .http import get_text

logger = logging.getLogger(__name__)

CHECK_PATH = "/check"

DEFAULT_MAX_ROUNDS = 5
DEFAULT_INTERVAL_SECONDS = 1.0


class AvailabilityPoller:
    """Drives one check/continue session per call to :meth:`resolve_availability`."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        application_key: str,
        *,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be >= 1")
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self._client = client
        self._application_key = application_key
        self.max_rounds = max_rounds
        self.interval_seconds = interval_seconds
        self._sleep = sleep

    async def _request(self, params: dict[str, str]) -> CheckResponse:
        text = await get_text(self._client, CHECK_PATH, params)
        payload = decode(text)
        if not isinstance(payload, dict):
            raise DecodeError(f"Unexpected check payload type: {type(payload).__name__}", text)
        try:
            return CheckResponse.model_validate(payload)
        except PydanticValidationError as e:
            raise DecodeError(f"Invalid check payload: {e}", text) from e

    async def start(self, isbn: str, system_ids: Sequence[str]) -> CheckResponse:
        """Issue the initiating check request."""
        return await self._request(
            {
                "appkey": self._application_key,
                "isbn": isbn,
                "systemid": ",".join(dict.fromkeys(system_ids)),
                "format": "json",
            }
        )

    async def poll(self, session: str) -> CheckResponse:
        """Issue one continuation request carrying only the session."""
        return await self._request(
            {
                "appkey": self._application_key,
                "session": session,
                "format": "json",
            }
        )

    async def resolve_availability(self, isbn: str, system_ids: Sequence[str]) -> CheckResponse:
        """Run the check for ``isbn`` across ``system_ids`` until it settles.

        Raises:
            PollTimeoutError: If the session is still running after ``max_rounds``.
            UpstreamError: On any non-success response or transport failure.
            DecodeError: If a response body is malformed.
        """
        state = PollState.INITIATED
        rounds = 0
        try:
            response = await self.start(isbn, system_ids)
            session = response.poll_session
            logger.info(
                "Started availability check for %s across %d systems (session=%s, complete=%s)",
                isbn,
                len(dict.fromkeys(system_ids)),
                session.session,
                session.is_complete,
            )

            state = PollState.POLLING
            while not session.is_complete and rounds < self.max_rounds:
                await self._sleep(self.interval_seconds)
                rounds += 1
                response = await self.poll(session.session)
                # Continuations may omit the session token; keep the one we hold
                session = PollSession(
                    session=response.session or session.session,
                    is_complete=response.continue_ == 0,
                )
                logger.debug(
                    "Poll round %d/%d for %s: complete=%s",
                    rounds,
                    self.max_rounds,
                    isbn,
                    session.is_complete,
                )
        except asyncio.CancelledError:
            logger.info(
                "Availability check for %s cancelled in state %s after %d rounds",
                isbn,
                state.value,
                rounds,
            )
            raise

        if session.is_complete:
            state = PollState.SETTLED
            logger.info("Availability check for %s %s after %d rounds", isbn, state.value, rounds)
            return response

        state = PollState.TIMED_OUT
        logger.warning(
            "Availability check for %s %s after %d rounds (session=%s)",
            isbn,
            state.value,
            rounds,
            session.session,
        )
        raise PollTimeoutError(session.session, rounds)
