"""Completeness analysis: how well do the gathered results answer the query?

The analyzer never fails because of badly formed model output. Everything
after the generation call goes through ``parse_analysis``, which returns a
valid ``GapAnalysis`` for any input.
"""

from collections.abc import Sequence
from time import perf_counter

from pydantic import ValidationError

from search_orchestrator.clients.generation import GenerationClient
from search_orchestrator.exceptions import AnalysisError, GenerationError
from search_orchestrator.logging import get_logger
from search_orchestrator.models import GapAnalysis, GapCategories, SearchContext, SearchResponse
from search_orchestrator.pipeline.aggregation import extract_contents, unique_items
from search_orchestrator.pipeline.parsing import parse_json_object
from search_orchestrator.prompts import (
    ANALYSIS_MAX_TOKENS,
    ANALYSIS_TEMPERATURE,
    build_analysis_prompt,
)

log = get_logger("search_orchestrator.pipeline.analysis")


def no_results_analysis() -> GapAnalysis:
    return GapAnalysis(
        completeness=0,
        information_gaps=["No search results available"],
        confidence_level=0,
        needs_more_search=True,
        reasoning="No search results were returned, so nothing answers the query yet.",
    )


def no_content_analysis() -> GapAnalysis:
    return GapAnalysis(
        completeness=10,
        information_gaps=["Search results contain no readable content"],
        gap_categories=GapCategories(
            factual=["Limited factual data available"],
            contextual=["Missing background context"],
            verification=["No sources available to verify claims"],
            depth=["No detailed explanation available"],
        ),
        confidence_level=20,
        needs_more_search=True,
        reasoning="Search results were returned but none had extractable text content.",
    )


def fallback_analysis(reason: str) -> GapAnalysis:
    return GapAnalysis(
        completeness=50,
        information_gaps=["Unable to properly analyze search results"],
        confidence_level=30,
        needs_more_search=True,
        reasoning=f"Analysis parsing failed ({reason}); assuming more search is needed.",
    )


def parse_analysis(reply: str) -> GapAnalysis:
    """Parse and coerce the analyzer reply; any failure yields ``fallback_analysis``."""
    payload = parse_json_object(reply)
    if payload is None:
        log.warning("analysis.parse_failed", reason="no JSON object", reply_length=len(reply or ""))
        return fallback_analysis("no JSON object found in response")
    try:
        return GapAnalysis.model_validate(payload)
    except ValidationError as e:
        log.warning("analysis.parse_failed", reason="validation", error_count=e.error_count())
        return fallback_analysis("response did not match the analysis schema")


class CompletenessAnalyzer:
    def __init__(self, generation: GenerationClient, completeness_threshold: int = 80) -> None:
        self.generation = generation
        self.completeness_threshold = completeness_threshold

    async def analyze(self, context: SearchContext, batches: Sequence[SearchResponse]) -> GapAnalysis:
        """Score coverage of ``batches`` for ``context``.

        Raises:
            AnalysisError: When the generation call fails (``ANALYSIS_FAILED``)
                or anything else breaks while analyzing (``ANALYSIS_ERROR``).
        """
        if not batches:
            return no_results_analysis()

        contents = extract_contents(unique_items(batches))
        if not contents:
            return no_content_analysis()

        start = perf_counter()
        prompt = build_analysis_prompt(context, contents, self.completeness_threshold)
        try:
            reply = await self.generation.generate(
                prompt,
                temperature=ANALYSIS_TEMPERATURE,
                max_tokens=ANALYSIS_MAX_TOKENS,
            )
        except GenerationError as e:
            log.error("analysis.failed", error=e.message, status=e.status)
            raise AnalysisError(e.message) from e
        except Exception as e:
            log.exception("analysis.unexpected_error", error=str(e))
            raise AnalysisError(str(e), code="ANALYSIS_ERROR") from e

        analysis = parse_analysis(reply)
        log.info(
            "analysis.completed",
            duration_ms=int((perf_counter() - start) * 1000),
            completeness=analysis.completeness,
            gap_count=len(analysis.information_gaps),
            needs_more_search=analysis.needs_more_search,
        )
        return analysis
