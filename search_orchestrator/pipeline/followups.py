"""Follow-up query generation from analysis gaps, ranked by a priority score."""

from collections.abc import Sequence

from search_orchestrator.clients.generation import GenerationClient
from search_orchestrator.exceptions import FollowupGenerationError, GenerationError
from search_orchestrator.logging import get_logger
from search_orchestrator.models import GapAnalysis, SearchContext
from search_orchestrator.pipeline.parsing import parse_query_list
from search_orchestrator.prompts import (
    FOLLOWUP_MAX_TOKENS,
    FOLLOWUP_TEMPERATURE,
    build_followup_prompt,
)

log = get_logger("search_orchestrator.pipeline.followups")

# --- Priority scoring ---

FACTUAL_KEYWORDS = (
    "data",
    "statistics",
    "research",
    "study",
    "studies",
    "numbers",
    "facts",
    "figures",
    "measurements",
    "evidence",
)
VERIFICATION_KEYWORDS = (
    "official",
    "verified",
    "authoritative",
    "confirmed",
    "source",
    "sources",
    "fact check",
    "peer reviewed",
    "peer-reviewed",
)
DEPTH_KEYWORDS = (
    "detailed",
    "comprehensive",
    "in-depth",
    "analysis",
    "mechanism",
    "mechanisms",
    "how",
    "explained",
    "deep",
)
CONTEXTUAL_KEYWORDS = (
    "background",
    "history",
    "context",
    "overview",
    "historical",
    "trends",
    "comparison",
    "impact",
)

# (gap category, keywords, points)
CATEGORY_WEIGHTS = (
    ("factual", FACTUAL_KEYWORDS, 40),
    ("verification", VERIFICATION_KEYWORDS, 35),
    ("depth", DEPTH_KEYWORDS, 30),
    ("contextual", CONTEXTUAL_KEYWORDS, 25),
)

TOPIC_MATCH_POINTS = 15
GAP_MATCH_POINTS = 10
MULTI_CATEGORY_BONUS = 20
LENGTH_BONUS = 5
WORD_COUNT_BONUS = 5


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def _overlaps(query: str, phrase: str) -> bool:
    phrase = phrase.lower().strip()
    return bool(phrase) and (phrase in query or query in phrase)


def score_followup_query(query: str, analysis: GapAnalysis) -> int:
    """Deterministic priority of a follow-up query against the gaps it should close."""
    text = query.lower().strip()
    categories = analysis.gap_categories
    score = 0

    matched_categories = 0
    for category, keywords, points in CATEGORY_WEIGHTS:
        if getattr(categories, category) and _contains_any(text, keywords):
            score += points
            matched_categories += 1

    score += TOPIC_MATCH_POINTS * sum(1 for topic in analysis.followup_topics if _overlaps(text, topic))
    score += GAP_MATCH_POINTS * sum(1 for gap in analysis.information_gaps if _overlaps(text, gap))

    if matched_categories > 1:
        score += MULTI_CATEGORY_BONUS
    if 20 <= len(text) <= 80:
        score += LENGTH_BONUS
    if 3 <= len(text.split()) <= 8:
        score += WORD_COUNT_BONUS

    return score


def rank_followup_queries(queries: Sequence[str], analysis: GapAnalysis, limit: int) -> list[str]:
    """Highest priority first; ties keep their parse order."""
    scored = sorted(
        ((score_followup_query(query, analysis), query) for query in queries),
        key=lambda pair: pair[0],
        reverse=True,
    )
    return [query for _, query in scored[:limit]]


# --- Generation ---


class FollowupQueryGenerator:
    def __init__(self, generation: GenerationClient, max_queries: int = 5) -> None:
        self.generation = generation
        self.max_queries = max_queries

    async def generate_followups(
        self,
        context: SearchContext,
        analysis: GapAnalysis,
        previous_queries: Sequence[str] = (),
    ) -> list[str]:
        """Return 0..max_queries gap-targeted queries, best first.

        No generation call is made when the analysis says no more search is
        needed or names no gaps.

        Raises:
            FollowupGenerationError: When the generation call fails.
        """
        if not analysis.needs_more_search or not analysis.information_gaps:
            log.info(
                "followups.skipped",
                needs_more_search=analysis.needs_more_search,
                gap_count=len(analysis.information_gaps),
            )
            return []

        prompt = build_followup_prompt(context, analysis, self.max_queries, previous_queries)
        try:
            reply = await self.generation.generate(
                prompt,
                temperature=FOLLOWUP_TEMPERATURE,
                max_tokens=FOLLOWUP_MAX_TOKENS,
            )
        except GenerationError as e:
            log.warning("followups.failed", error=e.message, status=e.status)
            raise FollowupGenerationError(e.message) from e

        # Parse generously, rank, then cut to the limit.
        candidates = parse_query_list(reply, original_query=context.query, limit=self.max_queries * 2)
        ranked = rank_followup_queries(candidates, analysis, self.max_queries)
        log.info("followups.generated", candidate_count=len(candidates), query_count=len(ranked))
        return ranked
