"""httpx plumbing shared by the Calil clients.

One builder keeps timeouts and headers identical for the directory and check
endpoints, and one request helper turns every transport outcome into either a
response body or an UpstreamError.
"""

import logging
from typing import Any

import httpx

from ..config import ServerConfig
from ..observability import trace_upstream_call
from .errors import UpstreamError

logger = logging.getLogger(__name__)


def build_async_client(
    config: ServerConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` pointed at the Calil API.

    ``transport`` lets tests substitute an ``httpx.MockTransport``.
    """
    return httpx.AsyncClient(
        base_url=config.api_base_url,
        timeout=httpx.Timeout(config.http_timeout_seconds),
        follow_redirects=True,
        headers={
            "User-Agent": config.user_agent,
            "Accept": "application/json, text/javascript, */*;q=0.1",
        },
        transport=transport,
    )


def _masked(params: dict[str, Any]) -> dict[str, Any]:
    return {k: ("API_KEY_HIDDEN" if k == "appkey" else v) for k, v in params.items()}


async def get_text(client: httpx.AsyncClient, path: str, params: dict[str, Any]) -> str:
    """GET ``path`` and return the body text.

    Raises:
        UpstreamError: On a non-2xx status or when no response was received.
    """
    logger.debug("Calling Calil API %s with params %s", path, _masked(params))

    with trace_upstream_call(path.strip("/")) as span:
        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.warning("Calil API %s transport failure: %s", path, e)
            raise UpstreamError(None, f"Calil API call to {path} failed: {e}") from e

        span.set_attribute("http.status_code", response.status_code)
        logger.debug("Calil API %s response status: %s", path, response.status_code)

        if not response.is_success:
            logger.warning("Calil API %s returned status %s", path, response.status_code)
            raise UpstreamError(response.status_code)

        text = response.text
        logger.debug("Calil API %s raw response length: %d characters", path, len(text))
        return text
