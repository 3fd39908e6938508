"""Tests for the Custom Search client."""

from typing import Any

import httpx
import pytest

from search_orchestrator.clients.search import (
    CustomSearchClient,
    SearchOptions,
    clean_html,
    format_for_synthesis,
    optimize_query_for_focus,
    search_options_for_focus,
)
from search_orchestrator.exceptions import SearchServiceError
from search_orchestrator.models import FocusMode, SearchContext, SearchResultItem

SAMPLE_PAYLOAD: dict[str, Any] = {
    "items": [
        {
            "title": "Ocean warming - Wikipedia",
            "link": "https://en.wikipedia.org/wiki/Ocean_heat_content",
            "snippet": "Ocean heat content is the energy absorbed by the ocean.",
            "displayLink": "en.wikipedia.org",
            "htmlTitle": "<b>Ocean</b> warming - Wikipedia",
            "htmlSnippet": "<b>Ocean</b> heat content is the energy&nbsp;absorbed by the ocean.",
        },
        {"title": "No link here", "snippet": "dropped"},
        {
            "title": "Coral bleaching",
            "link": "https://www.noaa.gov/coral",
            "snippet": "Warm water causes bleaching.",
            "displayLink": "www.noaa.gov",
        },
    ],
    "searchInformation": {"totalResults": "12300", "searchTime": 0.42},
    "queries": {
        "request": [{"startIndex": 1, "count": 10}],
        "nextPage": [{"startIndex": 11}],
    },
}


def _client(handler) -> tuple[CustomSearchClient, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return CustomSearchClient("api-key", "engine-id", http_client=http_client), requests


class TestBuildParams:
    """Tests for CustomSearchClient.build_params()."""

    def test__defaults__include_credentials_and_query(self) -> None:
        params = CustomSearchClient("k", "cx").build_params("ocean warming", SearchOptions())
        assert params == {"key": "k", "cx": "cx", "q": "ocean warming"}

    def test__options__map_to_api_parameters(self) -> None:
        options = SearchOptions(
            num=5,
            start=11,
            language="en",
            region="US",
            safe="active",
            date_restrict="y1",
            site_search="who.int",
        )

        params = CustomSearchClient("k", "cx").build_params("q", options)

        assert params["num"] == "5"
        assert params["start"] == "11"
        assert params["lr"] == "lang_en"
        assert params["gl"] == "US"
        assert params["safe"] == "active"
        assert params["dateRestrict"] == "y1"
        assert params["siteSearch"] == "who.int"

    @pytest.mark.parametrize("num,expected", [(25, "10"), (-3, "1"), (7, "7")])
    def test__num__is_clamped_to_api_range(self, num: int, expected: str) -> None:
        params = CustomSearchClient("k", "cx").build_params("q", SearchOptions(num=num))
        assert params["num"] == expected

    def test__exclude_terms__are_appended_to_query(self) -> None:
        params = CustomSearchClient("k", "cx").build_params("jaguar", SearchOptions(exclude_terms=["car", "nfl"]))
        assert params["q"] == "jaguar -car -nfl"


class TestSearch:
    """Tests for CustomSearchClient.search()."""

    @pytest.mark.asyncio
    async def test__search__parses_items_and_paging(self) -> None:
        client, requests = _client(lambda request: httpx.Response(200, json=SAMPLE_PAYLOAD))

        response = await client.search("ocean warming", SearchOptions(num=3))

        assert [item.url for item in response.items] == [
            "https://en.wikipedia.org/wiki/Ocean_heat_content",
            "https://www.noaa.gov/coral",
        ]
        assert response.items[0].display_url == "en.wikipedia.org"
        assert response.items[0].html_title == "<b>Ocean</b> warming - Wikipedia"
        assert response.total_results == 12300
        assert response.has_next_page is True
        assert response.next_page_start_index == 11
        assert response.search_time == 0.42

        sent = requests[0].url.params
        assert sent["q"] == "ocean warming"
        assert sent["num"] == "3"
        assert sent["cx"] == "engine-id"

    @pytest.mark.asyncio
    async def test__empty_payload__returns_empty_response(self) -> None:
        client, _ = _client(lambda request: httpx.Response(200, json={}))

        response = await client.search("nothing")

        assert response.items == []
        assert response.total_results == 0
        assert response.has_next_page is False
        assert response.next_page_start_index is None

    @pytest.mark.asyncio
    async def test__http_error__uses_provider_message(self) -> None:
        body = {"error": {"code": 403, "message": "API key not valid."}}
        client, _ = _client(lambda request: httpx.Response(403, json=body))

        with pytest.raises(SearchServiceError) as exc_info:
            await client.search("q")

        assert exc_info.value.status == 403
        assert exc_info.value.message == "API key not valid."
        assert exc_info.value.code == "SEARCH_FAILED"

    @pytest.mark.asyncio
    async def test__http_error_without_body__uses_status_line(self) -> None:
        client, _ = _client(lambda request: httpx.Response(429, text="slow down"))

        with pytest.raises(SearchServiceError) as exc_info:
            await client.search("q")

        assert exc_info.value.status == 429
        assert exc_info.value.message == "HTTP 429: Too Many Requests"

    @pytest.mark.asyncio
    async def test__transport_error__raises_search_service_error(self) -> None:
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = _client(_fail)

        with pytest.raises(SearchServiceError) as exc_info:
            await client.search("q")

        assert exc_info.value.status is None
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test__non_object_body__raises_search_service_error(self) -> None:
        client, _ = _client(lambda request: httpx.Response(200, json=["not", "an", "object"]))

        with pytest.raises(SearchServiceError):
            await client.search("q")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"items": [], "searchInformation": {"searchTime": "fast"}},
            {"queries": {"nextPage": [{}], "request": [{"startIndex": "x"}]}},
            {"queries": ["not", "a", "mapping"]},
            {"queries": {"nextPage": [{}], "request": {"startIndex": 1}}},
            {"items": 5},
            {"searchInformation": {"searchTime": -1}},
        ],
    )
    async def test__malformed_body__raises_search_service_error(self, payload: dict[str, Any]) -> None:
        client, _ = _client(lambda request: httpx.Response(200, json=payload))

        with pytest.raises(SearchServiceError) as exc_info:
            await client.search("q")

        assert exc_info.value.message == "Malformed search response"
        assert exc_info.value.status == 200

    @pytest.mark.asyncio
    async def test__search_with_focus__optimizes_query_and_options(self) -> None:
        client, requests = _client(lambda request: httpx.Response(200, json={}))
        context = SearchContext(query="coral reefs", focus_mode="news", language="en")

        await client.search_with_focus(context, num=4)

        sent = requests[0].url.params
        assert sent["q"] == '"coral reefs" news OR latest OR recent OR breaking'
        assert sent["dateRestrict"] == "y1"
        assert sent["safe"] == "active"
        assert sent["lr"] == "lang_en"
        assert sent["num"] == "4"


class TestValidate:
    """Tests for CustomSearchClient.validate()."""

    @pytest.mark.asyncio
    async def test__validate__searches_for_single_result(self) -> None:
        client, requests = _client(lambda request: httpx.Response(200, json={}))

        assert await client.validate() is True
        assert requests[0].url.params["q"] == "test"
        assert requests[0].url.params["num"] == "1"

    @pytest.mark.asyncio
    async def test__validate__returns_false_on_error(self) -> None:
        client, _ = _client(lambda request: httpx.Response(500, json={}))
        assert await client.validate() is False


class TestFocusHelpers:
    """Tests for focus-mode query and option helpers."""

    def test__general_query__is_unchanged(self) -> None:
        assert optimize_query_for_focus("ocean warming", FocusMode.GENERAL) == "ocean warming"

    def test__academic_query__targets_scholarly_sources(self) -> None:
        optimized = optimize_query_for_focus("ocean warming", FocusMode.ACADEMIC)
        assert optimized == '"ocean warming" site:edu OR site:scholar.google.com OR filetype:pdf'

    def test__options__merge_focus_context_and_overrides(self) -> None:
        context = SearchContext(query="q", focus_mode="medical", region="GB")

        options = search_options_for_focus(context, num=3, start=None)

        assert options.safe == "active"
        assert options.site_search is not None
        assert options.region == "GB"
        assert options.num == 3
        assert options.start is None

    def test__overrides__win_over_focus_presets(self) -> None:
        options = search_options_for_focus(SearchContext(query="q", focus_mode="academic"), date_restrict="m6")
        assert options.date_restrict == "m6"


class TestContentHelpers:
    """Tests for HTML cleaning and synthesis formatting."""

    def test__clean_html__strips_tags_and_entities(self) -> None:
        assert clean_html("<b>Ocean</b>&nbsp;heat &amp; <i>life</i>\n  today") == "Ocean heat & life today"

    def test__clean_html__handles_empty_input(self) -> None:
        assert clean_html("") == ""

    def test__format_for_synthesis__prefers_html_variants(self) -> None:
        item = SearchResultItem(
            title="plain",
            url="https://a.example",
            snippet="plain snippet",
            html_title="<b>Rich</b> title",
            html_snippet="Rich <em>snippet</em>",
        )

        assert format_for_synthesis(item) == "Title: Rich title\nURL: https://a.example\nContent: Rich snippet"

    def test__format_for_synthesis__falls_back_to_plain_text(self) -> None:
        item = SearchResultItem(title="Plain", url="https://b.example", snippet="Body")
        assert format_for_synthesis(item) == "Title: Plain\nURL: https://b.example\nContent: Body"
