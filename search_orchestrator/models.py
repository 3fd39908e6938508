"""Pydantic models for the iterative search orchestrator."""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import (
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class FocusMode(str, Enum):
    """Named preset adjusting prompt wording, search options and temperature."""

    GENERAL = "general"
    ACADEMIC = "academic"
    CREATIVE = "creative"
    NEWS = "news"
    TECHNICAL = "technical"
    MEDICAL = "medical"
    LEGAL = "legal"


class SearchContext(BaseModel):
    """User query plus focus mode. Immutable for one orchestration run."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(
        min_length=1,
        max_length=1000,
        description="Natural-language question to answer",
        examples=["How does climate change affect ocean ecosystems?"],
    )
    focus_mode: FocusMode = Field(
        default=FocusMode.GENERAL,
        description="Preset controlling prompt wording, search options and temperature",
        examples=["academic"],
    )
    language: str | None = Field(default=None, description="Two-letter language code", examples=["en"])
    region: str | None = Field(default=None, description="Two-letter country code", examples=["US"])


# --- Search results ---


class SearchResultItem(BaseModel):
    """One web search hit. Identity is the URL."""

    title: str = Field(default="", examples=["Ocean warming - Wikipedia"])
    url: str = Field(min_length=1, examples=["https://en.wikipedia.org/wiki/Ocean_heat_content"])
    snippet: str = Field(default="", examples=["Ocean heat content is the energy absorbed by the ocean..."])
    display_url: str = Field(default="", examples=["en.wikipedia.org"])
    html_title: str | None = Field(default=None, description="Raw HTML variant of the title")
    html_snippet: str | None = Field(default=None, description="Raw HTML variant of the snippet")


class SearchResponse(BaseModel):
    """Raw result batch returned by one search service call."""

    items: list[SearchResultItem] = Field(default_factory=list)
    total_results: int = Field(default=0, ge=0)
    has_next_page: bool = False
    next_page_start_index: int | None = None
    search_time: float = Field(default=0.0, ge=0.0, description="Provider-reported search time (seconds)")


class AggregatedResultSet(BaseModel):
    """Flattened, URL-unique, capped result sequence in first-seen order."""

    items: list[SearchResultItem] = Field(default_factory=list)

    @property
    def urls(self) -> list[str]:
        return [item.url for item in self.items]


class SearchOutcome(BaseModel):
    """Per-query outcome of a fan-out search batch."""

    query: str
    success: bool
    response: SearchResponse | None = None
    error: "ErrorInfo | None" = None


# --- Completeness analysis ---


def _coerce_str_list(value: Any) -> list[str]:
    """Non-list input becomes []; list members are stringified, blanks dropped."""
    if not isinstance(value, list):
        return []
    coerced = []
    for entry in value:
        if entry is None:
            continue
        text = entry if isinstance(entry, str) else str(entry)
        if text.strip():
            coerced.append(text.strip())
    return coerced


def _clamp_score(value: Any) -> int:
    """Numbers are rounded and clamped into [0, 100]; anything unparsable becomes 0."""
    if isinstance(value, bool):
        number = float(value)
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return 0
    if number != number:  # NaN
        return 0
    return int(round(min(100.0, max(0.0, number))))


class _LenientModel(BaseModel):
    """Accepts camelCase keys from model output while serializing in snake_case."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
    )


class GapCategories(_LenientModel):
    """Free-text gaps grouped by kind."""

    factual: list[str] = Field(default_factory=list, examples=[["Temperature rise statistics"]])
    contextual: list[str] = Field(default_factory=list, examples=[["Historical baseline data"]])
    verification: list[str] = Field(default_factory=list, examples=[["Contradictory claims about warming rates"]])
    depth: list[str] = Field(default_factory=list, examples=[["Detailed mechanisms of ecosystem disruption"]])

    @field_validator("factual", "contextual", "verification", "depth", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _coerce_str_list(value)

    def non_empty(self) -> dict[str, list[str]]:
        return {name: gaps for name, gaps in self.model_dump().items() if gaps}


class GapAnalysis(_LenientModel):
    """How well the aggregated results answer the query, and what is missing."""

    completeness: int = Field(default=0, ge=0, le=100, description="0-100 coverage score", examples=[65])
    information_gaps: list[str] = Field(
        default_factory=list,
        description="Concrete aspects of the query the results fail to address",
        examples=[["Missing specific temperature data"]],
    )
    gap_categories: GapCategories = Field(default_factory=GapCategories)
    followup_topics: list[str] = Field(default_factory=list, examples=[["ocean acidification"]])
    confidence_level: int = Field(default=0, ge=0, le=100, examples=[75])
    needs_more_search: bool = Field(default=False)
    reasoning: str = Field(default="", examples=["Several key aspects need more detailed information"])

    @field_validator("completeness", "confidence_level", mode="before")
    @classmethod
    def _scores(cls, value: Any) -> int:
        return _clamp_score(value)

    @field_validator("information_gaps", "followup_topics", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _coerce_str_list(value)

    @field_validator("gap_categories", mode="before")
    @classmethod
    def _categories(cls, value: Any) -> Any:
        if isinstance(value, (dict, GapCategories)):
            return value
        return {}

    @field_validator("needs_more_search", mode="before")
    @classmethod
    def _truthy(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("reasoning", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


# --- Orchestration state and output ---


class OrchestrationPhase(str, Enum):
    """States of the iteration controller."""

    INITIALIZING = "initializing"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    DECIDING = "deciding"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"


class StopReason(str, Enum):
    """Why the iteration loop handed off to synthesis."""

    ITERATION_DISABLED = "iteration_disabled"
    NO_MORE_SEARCH_NEEDED = "no_more_search_needed"
    COMPLETENESS_REACHED = "completeness_reached"
    NO_INFORMATION_GAPS = "no_information_gaps"
    NO_FOLLOWUP_QUERIES = "no_followup_queries"
    FOLLOWUP_SEARCH_FAILED = "followup_search_failed"
    DIMINISHING_RETURNS = "diminishing_returns"
    MAX_ITERATIONS = "max_iterations"
    ANALYSIS_FAILED = "analysis_failed"


class IterationState(BaseModel):
    """Mutable state of one ``search()`` call, discarded after synthesis."""

    phase: OrchestrationPhase = OrchestrationPhase.INITIALIZING
    iteration_index: int = Field(default=1, ge=1)
    accumulated_batches: list[SearchResponse] = Field(default_factory=list)
    current_analysis: GapAnalysis | None = None
    executed_queries: list[str] = Field(default_factory=list)
    stop_reason: StopReason | None = None


class SearchSource(BaseModel):
    """Source cited by the final answer; ``rank`` matches the ``[i]`` citation number."""

    title: str = Field(examples=["Ocean warming - Wikipedia"])
    url: str = Field(examples=["https://en.wikipedia.org/wiki/Ocean_heat_content"])
    snippet: str = Field(default="", examples=["Ocean heat content is the energy absorbed by the ocean..."])
    display_url: str = Field(default="", examples=["en.wikipedia.org"])
    rank: int = Field(ge=1, examples=[1])


class FinalAnswer(BaseModel):
    """Synthesized, citation-backed answer for one orchestration run."""

    query: str = Field(min_length=1, examples=["How does climate change affect ocean ecosystems?"])
    focus_mode: FocusMode = Field(examples=["academic"])
    answer: str = Field(
        description="Generated answer text with [n] citations",
        examples=["Ocean warming drives coral bleaching [1] and acidification [2]..."],
    )
    sources: list[SearchSource] = Field(default_factory=list)
    elapsed_ms: int = Field(ge=0, description="Wall-clock time of the whole run (milliseconds)", examples=[8400])
    iterations: int = Field(default=1, ge=1, description="Search iterations performed")
    queries: list[str] = Field(default_factory=list, description="Every search query executed, in order")
    stop_reason: StopReason | None = Field(default=None, description="Why iterative refinement stopped")
    analysis: GapAnalysis | None = Field(default=None, description="Last completeness analysis, if any ran")


class ConfigurationStatus(BaseModel):
    """Outcome of probing both external services."""

    generation_ok: bool
    search_ok: bool
    overall: bool


# --- Tagged results ---


class ErrorInfo(BaseModel):
    """Normalized error: machine-readable code plus human-readable message."""

    code: str = Field(examples=["INITIAL_SEARCH_FAILED"])
    message: str = Field(examples=["All 3 search attempts failed. Cannot proceed with synthesis."])
    status: int | None = Field(default=None, description="HTTP-status-like code from an external service")
    details: Any = None


class OperationResult(BaseModel, Generic[T]):
    """Tagged success/error result returned across the orchestration boundary."""

    success: bool
    data: T | None = None
    error: ErrorInfo | None = None

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str, *, status: int | None = None, details: Any = None) -> "OperationResult[T]":
        return cls(success=False, error=ErrorInfo(code=code, message=message, status=status, details=details))


SearchOutcome.model_rebuild()
