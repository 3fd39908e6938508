"""Search orchestration pipeline stages."""

from search_orchestrator.pipeline.aggregation import (
    ResultAggregator,
    extract_contents,
    readable_items,
    to_sources,
    unique_count,
)
from search_orchestrator.pipeline.analysis import CompletenessAnalyzer, parse_analysis
from search_orchestrator.pipeline.executor import MultiSearchExecutor
from search_orchestrator.pipeline.followups import (
    FollowupQueryGenerator,
    rank_followup_queries,
    score_followup_query,
)
from search_orchestrator.pipeline.query_generation import QueryGenerator
from search_orchestrator.pipeline.synthesis import AnswerSynthesizer

__all__ = [
    "QueryGenerator",
    "MultiSearchExecutor",
    "ResultAggregator",
    "CompletenessAnalyzer",
    "FollowupQueryGenerator",
    "AnswerSynthesizer",
    # Helpers
    "extract_contents",
    "parse_analysis",
    "readable_items",
    "rank_followup_queries",
    "score_followup_query",
    "to_sources",
    "unique_count",
]
