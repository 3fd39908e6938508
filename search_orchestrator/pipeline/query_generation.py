"""Initial query generation: one user question into N diverse search queries."""

from search_orchestrator.clients.generation import GenerationClient
from search_orchestrator.exceptions import GenerationError, QueryGenerationError
from search_orchestrator.logging import get_logger
from search_orchestrator.models import SearchContext
from search_orchestrator.pipeline.parsing import parse_query_list
from search_orchestrator.prompts import (
    QUERY_GENERATION_MAX_TOKENS,
    QUERY_GENERATION_TEMPERATURE,
    build_query_generation_prompt,
)

log = get_logger("search_orchestrator.pipeline.query_generation")


class QueryGenerator:
    def __init__(self, generation: GenerationClient, max_queries: int = 3) -> None:
        self.generation = generation
        self.max_queries = max_queries

    async def generate(self, context: SearchContext) -> list[str]:
        """Return 1..max_queries queries; never empty.

        Raises:
            QueryGenerationError: When the generation call itself fails.
        """
        prompt = build_query_generation_prompt(context, self.max_queries)
        try:
            reply = await self.generation.generate(
                prompt,
                temperature=QUERY_GENERATION_TEMPERATURE,
                max_tokens=QUERY_GENERATION_MAX_TOKENS,
            )
        except GenerationError as e:
            log.warning("query_generation.failed", error=e.message, status=e.status)
            raise QueryGenerationError(context.query, e.message) from e

        queries = parse_query_list(reply, original_query=context.query, limit=self.max_queries)
        if not queries:
            log.info("query_generation.fallback_to_original", reply_length=len(reply))
            return [context.query]

        log.info("query_generation.completed", query_count=len(queries))
        return queries
