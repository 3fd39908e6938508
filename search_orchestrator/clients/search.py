"""Google Custom Search JSON API client."""

from typing import Any, Literal

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, ValidationError

from search_orchestrator.exceptions import SearchServiceError
from search_orchestrator.logging import get_logger
from search_orchestrator.models import (
    FocusMode,
    SearchContext,
    SearchResponse,
    SearchResultItem,
)

log = get_logger("search_orchestrator.clients.search")

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
MAX_RESULTS_PER_CALL = 10
DEFAULT_TIMEOUT = 30.0


class SearchOptions(BaseModel):
    """Per-call search parameters."""

    num: int | None = Field(default=None, description="Results to return (clamped to 1-10)")
    start: int | None = Field(default=None, ge=1, description="1-based index of the first result")
    language: str | None = Field(default=None, examples=["en"])
    region: str | None = Field(default=None, examples=["US"])
    safe: Literal["active", "off"] | None = None
    date_restrict: str | None = Field(default=None, examples=["y1"])
    site_search: str | None = None
    exclude_terms: list[str] = Field(default_factory=list)


FOCUS_QUERY_TEMPLATES: dict[FocusMode, str] = {
    FocusMode.GENERAL: "{query}",
    FocusMode.ACADEMIC: '"{query}" site:edu OR site:scholar.google.com OR filetype:pdf',
    FocusMode.CREATIVE: '"{query}" inspiration OR creative OR ideas OR examples',
    FocusMode.NEWS: '"{query}" news OR latest OR recent OR breaking',
    FocusMode.TECHNICAL: '"{query}" documentation OR tutorial OR API OR implementation',
    FocusMode.MEDICAL: '"{query}" medical OR health OR clinical OR research pubmed',
    FocusMode.LEGAL: '"{query}" law OR legal OR court OR statute OR regulation',
}

FOCUS_SEARCH_OPTIONS: dict[FocusMode, dict[str, Any]] = {
    FocusMode.GENERAL: {},
    FocusMode.ACADEMIC: {"date_restrict": "y5", "safe": "off"},
    FocusMode.CREATIVE: {"safe": "off"},
    FocusMode.NEWS: {"date_restrict": "y1", "safe": "active"},
    FocusMode.TECHNICAL: {"safe": "off"},
    FocusMode.MEDICAL: {"safe": "active", "site_search": "pubmed.ncbi.nlm.nih.gov OR who.int OR mayoclinic.org"},
    FocusMode.LEGAL: {"safe": "active"},
}


def optimize_query_for_focus(query: str, focus_mode: FocusMode) -> str:
    return FOCUS_QUERY_TEMPLATES.get(focus_mode, "{query}").format(query=query)


def search_options_for_focus(context: SearchContext, **overrides: Any) -> SearchOptions:
    """Focus-mode options plus the context's language/region; ``overrides`` win."""
    values: dict[str, Any] = {
        **FOCUS_SEARCH_OPTIONS.get(context.focus_mode, {}),
        "language": context.language,
        "region": context.region,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return SearchOptions(**values)


def clean_html(html: str) -> str:
    """Strip markup, decode entities and collapse whitespace."""
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text()
    return " ".join(text.split())


def format_for_synthesis(item: SearchResultItem) -> str:
    title = clean_html(item.html_title or item.title)
    content = clean_html(item.html_snippet or item.snippet)
    return f"Title: {title}\nURL: {item.url}\nContent: {content}"


class CustomSearchClient:
    """Async client for the Custom Search JSON API.

    Pass ``http_client`` to share a connection pool (or a mock transport in
    tests); otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        api_key: str,
        search_engine_id: str,
        *,
        base_url: str = CUSTOM_SEARCH_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.search_engine_id = search_engine_id
        self.base_url = base_url
        self.http_client = http_client
        self.timeout = timeout

    def build_params(self, query: str, options: SearchOptions) -> dict[str, str]:
        params = {"key": self.api_key, "cx": self.search_engine_id, "q": query}

        if options.num:
            params["num"] = str(max(1, min(MAX_RESULTS_PER_CALL, options.num)))
        if options.start:
            params["start"] = str(options.start)
        if options.language:
            params["lr"] = f"lang_{options.language}"
        if options.region:
            params["gl"] = options.region
        if options.safe:
            params["safe"] = options.safe
        if options.date_restrict:
            params["dateRestrict"] = options.date_restrict
        if options.site_search:
            params["siteSearch"] = options.site_search
        if options.exclude_terms:
            params["q"] = f"{query} " + " ".join(f"-{term}" for term in options.exclude_terms)

        return params

    async def _get(self, params: dict[str, str]) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.get(self.base_url, params=params)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.base_url, params=params)

    async def search(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        """Run one search call.

        Raises:
            SearchServiceError: On transport failure, a non-2xx status, or a
                body that is not a well-formed search response.
        """
        params = self.build_params(query, options or SearchOptions())

        try:
            response = await self._get(params)
        except httpx.HTTPError as e:
            log.warning("search.transport_failed", query=query, error=str(e))
            raise SearchServiceError(str(e) or type(e).__name__, details=type(e).__name__) from e

        if response.is_error:
            payload = _safe_json(response)
            error = payload.get("error") if isinstance(payload, dict) else None
            message = (error or {}).get("message") if isinstance(error, dict) else None
            message = message or f"HTTP {response.status_code}: {response.reason_phrase}"
            log.warning("search.http_error", query=query, status=response.status_code, error=message)
            raise SearchServiceError(message, status=response.status_code, details=payload)

        payload = _safe_json(response)
        if not isinstance(payload, dict):
            raise SearchServiceError("Malformed search response", status=response.status_code)

        try:
            return self.parse_response(payload)
        except (TypeError, ValueError, LookupError, AttributeError, ValidationError) as e:
            log.warning("search.malformed_response", query=query, error=str(e))
            raise SearchServiceError(
                "Malformed search response", status=response.status_code, details=type(e).__name__
            ) from e

    async def search_with_focus(
        self,
        context: SearchContext,
        *,
        num: int | None = None,
        start: int | None = None,
    ) -> SearchResponse:
        """Search the focus-optimized form of ``context.query`` with focus options."""
        query = optimize_query_for_focus(context.query, context.focus_mode)
        return await self.search(query, search_options_for_focus(context, num=num, start=start))

    async def validate(self) -> bool:
        try:
            await self.search("test", SearchOptions(num=1))
        except SearchServiceError as e:
            log.warning("search.validation_failed", error=e.message, status=e.status)
            return False
        return True

    @staticmethod
    def parse_response(payload: dict[str, Any]) -> SearchResponse:
        items = []
        for raw in payload.get("items") or []:
            if not isinstance(raw, dict) or not raw.get("link"):
                continue
            items.append(
                SearchResultItem(
                    title=raw.get("title") or "",
                    url=raw["link"],
                    snippet=raw.get("snippet") or "",
                    display_url=raw.get("displayLink") or "",
                    html_title=raw.get("htmlTitle"),
                    html_snippet=raw.get("htmlSnippet"),
                )
            )

        info = payload.get("searchInformation") or {}
        try:
            total_results = int(info.get("totalResults") or 0)
        except (TypeError, ValueError):
            total_results = 0

        queries = payload.get("queries") or {}
        request = (queries.get("request") or [{}])[0]
        has_next_page = queries.get("nextPage") is not None
        next_start = None
        if has_next_page:
            next_start = int(request.get("startIndex") or 1) + int(request.get("count") or len(items))

        return SearchResponse(
            items=items,
            total_results=max(0, total_results),
            has_next_page=has_next_page,
            next_page_start_index=next_start,
            search_time=float(info.get("searchTime") or 0.0),
        )


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}
