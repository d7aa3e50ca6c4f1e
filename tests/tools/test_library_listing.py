"""
Tests for the get_libraries_by_prefecture and get_libraries_by_city tools.
"""

from contextlib import contextmanager
from unittest.mock import patch

import httpx
import pytest
from conftest import FakeCalil

from calil_book_search.calil.service import BookSearchService
from calil_book_search.tools import all_tools
from calil_book_search.tools.libraries import (
    CityLibrariesInput,
    get_libraries_by_city_handler,
    get_libraries_by_prefecture_handler,
)


@pytest.fixture
def use_fake(test_config):
    @contextmanager
    def _use(fake: FakeCalil, config=test_config):
        with (
            patch(
                "calil_book_search.tools.libraries.get_search_service",
                lambda: BookSearchService(config, transport=fake.transport),
            ),
            patch("calil_book_search.tools.libraries.get_config", lambda: config),
        ):
            yield fake

    return _use


class TestToolRegistry:
    """Test the exported tool definitions."""

    def test_all_tools_are_registered(self):
        names = [tool["name"] for tool in all_tools]
        assert names == ["search_books", "get_libraries_by_prefecture", "get_libraries_by_city"]

    def test_tools_have_schema_and_handler(self):
        for tool in all_tools:
            assert tool["description"]
            assert tool["inputSchema"]["type"] == "object"
            assert callable(tool["handler"])


class TestGetLibrariesByPrefecture:
    """Test prefecture listings."""

    @pytest.mark.asyncio
    async def test_lists_libraries(self, use_fake):
        fake = FakeCalil()

        with use_fake(fake):
            result = await get_libraries_by_prefecture_handler({"prefecture": "千葉県"})

        assert "isError" not in result
        assert result["data"]["prefecture"] == "千葉県"
        assert result["data"]["library_count"] == 4
        assert result["data"]["libraries"][0]["name"] == "千葉市中央図書館"
        assert "Found 4 libraries in 千葉県" in result["content"][0]["text"]
        assert "city" not in FakeCalil.params(fake.library_requests[0])

    @pytest.mark.asyncio
    async def test_listing_is_truncated(self, use_fake, test_config):
        config = test_config.model_copy(update={"max_display_libraries": 3})

        with use_fake(FakeCalil(), config):
            result = await get_libraries_by_prefecture_handler({"prefecture": "千葉県"})

        assert result["data"]["library_count"] == 4
        assert len(result["data"]["libraries"]) == 3
        assert "showing the first 3" in result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_unknown_prefecture_is_empty(self, use_fake):
        with use_fake(FakeCalil(libraries=[])):
            result = await get_libraries_by_prefecture_handler({"prefecture": "存在しない県"})

        assert "isError" not in result
        assert result["data"]["library_count"] == 0

    @pytest.mark.asyncio
    async def test_blank_prefecture(self, use_fake):
        fake = FakeCalil()

        with use_fake(fake):
            result = await get_libraries_by_prefecture_handler({"prefecture": "  "})

        assert result["isError"] is True
        assert result["error_type"] == "validation"
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_upstream_failure(self, use_fake):
        with use_fake(FakeCalil(libraries=httpx.Response(500))):
            result = await get_libraries_by_prefecture_handler({"prefecture": "千葉県"})

        assert result["isError"] is True
        assert result["error_type"] == "upstream"
        assert result["retryable"] is True


class TestGetLibrariesByCity:
    """Test city listings."""

    @pytest.mark.asyncio
    async def test_lists_city_libraries(self, use_fake):
        fake = FakeCalil()

        with use_fake(fake):
            result = await get_libraries_by_city_handler({"prefecture": "千葉県", "city": "千葉市"})

        assert result["data"]["city"] == "千葉市"
        assert result["data"]["library_count"] == 3
        assert FakeCalil.params(fake.library_requests[0])["city"] == "千葉市"

    @pytest.mark.asyncio
    async def test_city_is_required(self, use_fake):
        with use_fake(FakeCalil()):
            result = await get_libraries_by_city_handler({"prefecture": "千葉県"})

        assert result["isError"] is True
        assert "city" in result["content"][0]["text"]

    def test_input_strips_whitespace(self):
        params = CityLibrariesInput(prefecture=" 千葉県", city="千葉市 ")
        assert params.prefecture == "千葉県"
        assert params.city == "千葉市"
