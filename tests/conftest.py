"""Test configuration and fixtures for the Calil Book Search MCP Server.

The Calil API is never called for real: FakeCalil serves canned directory
and check payloads through ``httpx.MockTransport`` and records every request
so tests can assert on the polling protocol.
"""

import json
import os
from collections.abc import Generator
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from calil_book_search.calil.service import BookSearchService
from calil_book_search.config import ServerConfig, reset_config

TEST_ISBN = "4299062647"
TEST_KEY = "test-app-key"


# === Canned Calil payloads ===


CHIBA_LIBRARIES: list[dict[str, Any]] = [
    {
        "systemid": "Chiba_Chiba",
        "systemname": "千葉県千葉市",
        "libkey": "中央",
        "libid": "104688",
        "short": "中央",
        "formal": "千葉市中央図書館",
        "url_pc": "https://www.library.city.chiba.jp/",
        "address": "千葉県千葉市中央区弁天3-7-7",
        "pref": "千葉県",
        "city": "千葉市中央区",
        "post": "260-0045",
        "tel": "043-287-3980",
        "geocode": "140.1149,35.6193",
        "category": "LARGE",
        "isil": "JP-1000741",
    },
    {
        "systemid": "Chiba_Chiba",
        "systemname": "千葉県千葉市",
        "libkey": "花見川",
        "libid": "104689",
        "short": "花見川",
        "formal": "千葉市花見川図書館",
        "address": "千葉県千葉市花見川区瑞穂1-1",
        "pref": "千葉県",
        "city": "千葉市花見川区",
        "category": "MEDIUM",
        "faid": "",
    },
    {
        "systemid": "Chiba_Pref",
        "systemname": "千葉県",
        "libkey": "中央",
        "libid": "104600",
        "short": "県立中央",
        "formal": "千葉県立中央図書館",
        "address": "千葉県千葉市中央区市場町11-1",
        "pref": "千葉県",
        "city": "千葉市中央区",
        "category": "LARGE",
        "faid": "FA001",
    },
    {
        "systemid": "Chiba_Funabashi",
        "systemname": "千葉県船橋市",
        "libkey": "中央",
        "libid": "104700",
        "short": "中央",
        "formal": "船橋市中央図書館",
        "address": "千葉県船橋市本町4-35-1",
        "pref": "千葉県",
        "city": "船橋市",
        "category": "MEDIUM",
    },
]


def check_payload(
    systems: dict[str, Any] | None = None,
    *,
    session: str = "session-1",
    cont: int = 0,
    isbn: str = TEST_ISBN,
) -> dict[str, Any]:
    """Build a check endpoint payload; ``systems=None`` leaves the ISBN out."""
    books = {} if systems is None else {isbn: systems}
    return {"session": session, "continue": cont, "books": books}


def jsonp(payload: Any, token: str = "callback") -> str:
    return f"{token}({json.dumps(payload, ensure_ascii=False)});"


# === Fake Calil API ===


class FakeCalil:
    """Mock transport for the /library and /check endpoints.

    ``check_responses`` are served in order; the last one repeats once the
    list is exhausted. Bodies may be dicts (sent as JSONP), strings (sent
    verbatim) or ``httpx.Response`` objects.
    """

    def __init__(
        self,
        libraries: Any = None,
        check_responses: list[Any] | None = None,
    ):
        self.libraries = CHIBA_LIBRARIES if libraries is None else libraries
        self.check_responses = list(check_responses or [check_payload()])
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def _body(self, body: Any) -> httpx.Response:
        if isinstance(body, httpx.Response):
            return body
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, text=jsonp(body))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/library":
            return self._body(self.libraries)
        if request.url.path == "/check":
            index = min(len(self.check_requests) - 1, len(self.check_responses) - 1)
            return self._body(self.check_responses[index])
        return httpx.Response(404)

    @property
    def library_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/library"]

    @property
    def check_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/check"]

    @staticmethod
    def params(request: httpx.Request) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.url.query.decode()).items()}


# === Configuration Fixtures ===


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide a clean environment without CALIL_* variables."""
    original_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("CALIL_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def test_config(clean_env) -> Generator[ServerConfig, None, None]:
    """Test configuration: fake key, no inter-round delay, small display limit."""
    reset_config()

    config = ServerConfig(
        _env_file=None,
        server_name="test-calil-book-search",
        application_key=TEST_KEY,
        api_base_url="https://api.calil.test",
        poll_max_rounds=5,
        poll_interval_seconds=0,
        max_display_libraries=10,
        debug=True,
        log_level="DEBUG",
    )

    yield config

    reset_config()


@pytest.fixture
def fake_calil() -> FakeCalil:
    return FakeCalil()


@pytest.fixture
def service_factory(test_config):
    """Build a BookSearchService backed by a FakeCalil transport."""

    def factory(fake: FakeCalil) -> BookSearchService:
        return BookSearchService(test_config, transport=fake.transport)

    return factory
