"""Shared fixtures: scripted generation models and a stub search service."""

from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from search_orchestrator.clients.generation import GenerationClient, create_generation_agent
from search_orchestrator.clients.search import SearchOptions
from search_orchestrator.exceptions import SearchServiceError
from search_orchestrator.models import SearchContext, SearchResponse, SearchResultItem


def _last_prompt(messages: list[ModelMessage]) -> str:
    for message in reversed(messages):
        if isinstance(message, ModelRequest):
            for part in message.parts:
                if isinstance(part, UserPromptPart):
                    return part.content if isinstance(part.content, str) else str(part.content)
    return ""


class ScriptedGeneration:
    """FunctionModel-backed generation service replying from a script.

    Each call consumes the next reply; an ``Exception`` reply is raised
    instead. Prompts and model settings are recorded per call.
    """

    def __init__(self, *replies: str | Exception, default: str = "OK") -> None:
        self.replies = list(replies)
        self.default = default
        self.prompts: list[str] = []
        self.settings: list[dict[str, Any]] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def _next(self, messages: list[ModelMessage], info: AgentInfo) -> str:
        self.prompts.append(_last_prompt(messages))
        self.settings.append(dict(info.model_settings or {}))
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply

    def _respond(self, messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        return ModelResponse(parts=[TextPart(self._next(messages, info))])

    async def _stream(self, messages: list[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
        reply = self._next(messages, info)
        for word in reply.split(" "):
            yield word + " "

    def model(self) -> FunctionModel:
        return FunctionModel(self._respond, stream_function=self._stream)

    def client(self) -> GenerationClient:
        return GenerationClient(create_generation_agent(self.model()))


class StubSearchClient:
    """In-memory search service.

    ``results`` maps a query to the items it returns; a ``SearchServiceError``
    value makes that query fail. Unknown queries return ``default``.
    """

    def __init__(
        self,
        results: dict[str, list[SearchResultItem] | Exception] | None = None,
        *,
        default: list[SearchResultItem] | None = None,
        valid: bool = True,
    ) -> None:
        self.results = results or {}
        self.default = default or []
        self.valid = valid
        self.calls: list[tuple[str, SearchOptions | None]] = []

    async def search(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        self.calls.append((query, options))
        outcome = self.results.get(query, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return SearchResponse(items=list(outcome), total_results=len(outcome))

    async def search_with_focus(
        self,
        context: SearchContext,
        *,
        num: int | None = None,
        start: int | None = None,
    ) -> SearchResponse:
        return await self.search(context.query, SearchOptions(num=num, start=start))

    async def validate(self) -> bool:
        return self.valid


def make_item(url: str, title: str | None = None, snippet: str | None = None) -> SearchResultItem:
    return SearchResultItem(
        title=title if title is not None else f"Title {url}",
        url=url,
        snippet=snippet if snippet is not None else f"Snippet about {url}",
        display_url=url.split("/")[2] if "://" in url else url,
    )


@pytest.fixture
def scripted() -> type[ScriptedGeneration]:
    return ScriptedGeneration


@pytest.fixture
def stub_search() -> type[StubSearchClient]:
    return StubSearchClient


@pytest.fixture
def item() -> Callable[..., SearchResultItem]:
    return make_item


@pytest.fixture
def search_failure() -> Callable[..., SearchServiceError]:
    def _failure(message: str = "Rate limit exceeded", status: int = 429) -> SearchServiceError:
        return SearchServiceError(message, status=status)

    return _failure
