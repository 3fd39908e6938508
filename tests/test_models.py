"""Tests for domain models."""

import pytest
from pydantic import ValidationError

from search_orchestrator.models import (
    AggregatedResultSet,
    FinalAnswer,
    FocusMode,
    GapAnalysis,
    GapCategories,
    OperationResult,
    SearchContext,
    SearchOutcome,
    SearchResultItem,
    StopReason,
)


class TestSearchContext:
    """Tests for SearchContext validation."""

    def test__defaults__to_general_focus(self) -> None:
        context = SearchContext(query="What is photosynthesis?")
        assert context.focus_mode == FocusMode.GENERAL
        assert context.language is None

    def test__focus_mode__accepts_string_value(self) -> None:
        assert SearchContext(query="q", focus_mode="academic").focus_mode == FocusMode.ACADEMIC

    def test__empty_query__raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            SearchContext(query="")

    def test__overlong_query__raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            SearchContext(query="x" * 1001)

    def test__unknown_focus_mode__raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            SearchContext(query="q", focus_mode="poetry")

    def test__context__is_frozen(self) -> None:
        context = SearchContext(query="q")
        with pytest.raises(ValidationError):
            context.query = "other"  # type: ignore[misc]


class TestSearchResults:
    """Tests for result models."""

    def test__result_item__requires_url(self) -> None:
        with pytest.raises(ValidationError):
            SearchResultItem(title="t", url="")

    def test__aggregated_result_set__exposes_urls_in_order(self) -> None:
        result_set = AggregatedResultSet(
            items=[SearchResultItem(url="https://a.example"), SearchResultItem(url="https://b.example")]
        )
        assert result_set.urls == ["https://a.example", "https://b.example"]

    def test__search_outcome__resolves_error_forward_reference(self) -> None:
        outcome = SearchOutcome(query="q", success=False, error={"code": "SEARCH_FAILED", "message": "boom"})
        assert outcome.error is not None
        assert outcome.error.code == "SEARCH_FAILED"


class TestGapAnalysis:
    """Tests for lenient GapAnalysis parsing of model output."""

    def test__camel_case_keys__are_accepted(self) -> None:
        analysis = GapAnalysis.model_validate(
            {
                "completeness": 65,
                "informationGaps": ["Missing specific temperature data"],
                "gapCategories": {"factual": ["Temperature rise statistics"]},
                "followupTopics": ["ocean acidification"],
                "confidenceLevel": 75,
                "needsMoreSearch": True,
                "reasoning": "Several aspects need more detail",
            }
        )

        assert analysis.completeness == 65
        assert analysis.information_gaps == ["Missing specific temperature data"]
        assert analysis.gap_categories.factual == ["Temperature rise statistics"]
        assert analysis.confidence_level == 75
        assert analysis.needs_more_search is True

    def test__snake_case_keys__are_accepted(self) -> None:
        analysis = GapAnalysis(completeness=40, information_gaps=["a"], needs_more_search=True)
        assert analysis.information_gaps == ["a"]

    @pytest.mark.parametrize(
        "raw,expected",
        [(150, 100), (-10, 0), (72.6, 73), ("55", 55), ("high", 0), (None, 0)],
    )
    def test__scores__are_clamped(self, raw: object, expected: int) -> None:
        analysis = GapAnalysis.model_validate({"completeness": raw, "confidenceLevel": raw})
        assert analysis.completeness == expected
        assert analysis.confidence_level == expected

    def test__non_list_gaps__become_empty(self) -> None:
        analysis = GapAnalysis.model_validate({"informationGaps": "not a list", "followupTopics": None})
        assert analysis.information_gaps == []
        assert analysis.followup_topics == []

    def test__list_entries__are_stringified_and_blank_dropped(self) -> None:
        analysis = GapAnalysis.model_validate({"informationGaps": ["  gap one ", 42, None, "   "]})
        assert analysis.information_gaps == ["gap one", "42"]

    def test__truthy_flag__is_coerced(self) -> None:
        assert GapAnalysis.model_validate({"needsMoreSearch": "yes"}).needs_more_search is True
        assert GapAnalysis.model_validate({"needsMoreSearch": 0}).needs_more_search is False

    def test__reasoning__is_stringified(self) -> None:
        assert GapAnalysis.model_validate({"reasoning": 12345}).reasoning == "12345"
        assert GapAnalysis.model_validate({"reasoning": None}).reasoning == ""

    def test__malformed_gap_categories__become_empty(self) -> None:
        analysis = GapAnalysis.model_validate({"gapCategories": ["factual"]})
        assert analysis.gap_categories == GapCategories()

    def test__gap_categories__non_empty_skips_blank_kinds(self) -> None:
        categories = GapCategories(factual=["numbers"], depth=["mechanisms"])
        assert categories.non_empty() == {"factual": ["numbers"], "depth": ["mechanisms"]}


class TestOperationResult:
    """Tests for tagged operation results."""

    def test__ok__wraps_data(self) -> None:
        answer = FinalAnswer(
            query="q",
            focus_mode=FocusMode.GENERAL,
            answer="a [1]",
            elapsed_ms=5,
            stop_reason=StopReason.COMPLETENESS_REACHED,
        )

        result = OperationResult[FinalAnswer].ok(answer)

        assert result.success is True
        assert result.data == answer
        assert result.error is None

    def test__fail__carries_error_info(self) -> None:
        result = OperationResult[FinalAnswer].fail("NO_RESULTS", "nothing found", status=None, details={"q": "x"})

        assert result.success is False
        assert result.data is None
        assert result.error is not None
        assert result.error.code == "NO_RESULTS"
        assert result.error.details == {"q": "x"}

    def test__final_answer__serializes_enums_as_values(self) -> None:
        answer = FinalAnswer(query="q", focus_mode=FocusMode.NEWS, answer="a", elapsed_ms=0)
        dumped = answer.model_dump(mode="json")
        assert dumped["focus_mode"] == "news"
        assert dumped["iterations"] == 1
