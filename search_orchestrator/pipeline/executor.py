"""Concurrent, failure-isolating fan-out of a batch of search queries."""

import asyncio
import math
from collections.abc import Sequence
from time import perf_counter

from search_orchestrator.clients.search import CustomSearchClient, search_options_for_focus
from search_orchestrator.exceptions import SearchServiceError
from search_orchestrator.logging import get_logger
from search_orchestrator.models import ErrorInfo, SearchContext, SearchOutcome

log = get_logger("search_orchestrator.pipeline.executor")


def per_query_budget(total_budget: int, query_count: int) -> int:
    if query_count <= 0:
        return 0
    return math.ceil(total_budget / query_count)


class MultiSearchExecutor:
    def __init__(self, search: CustomSearchClient, total_results: int = 10) -> None:
        self.search = search
        self.total_results = total_results

    async def search_all(self, queries: Sequence[str], context: SearchContext) -> list[SearchOutcome]:
        """Search every query concurrently; one outcome per query, in input order.

        A failing query is captured as an unsuccessful outcome and never
        cancels its siblings.
        """
        if not queries:
            return []

        options = search_options_for_focus(context, num=per_query_budget(self.total_results, len(queries)))
        outcomes: list[SearchOutcome | None] = [None] * len(queries)

        async def _search_one(index: int, query: str) -> None:
            try:
                response = await self.search.search(query, options)
            except SearchServiceError as e:
                log.warning("executor.query_failed", query=query, error=e.message, status=e.status)
                outcomes[index] = SearchOutcome(
                    query=query,
                    success=False,
                    error=ErrorInfo(code=e.code, message=e.message, status=e.status),
                )
            except Exception as e:
                log.warning("executor.query_failed", query=query, error=str(e), error_type=type(e).__name__)
                outcomes[index] = SearchOutcome(
                    query=query,
                    success=False,
                    error=ErrorInfo(code="SEARCH_FAILED", message=str(e) or type(e).__name__),
                )
            else:
                log.info("executor.query_completed", query=query, item_count=len(response.items))
                outcomes[index] = SearchOutcome(query=query, success=True, response=response)

        start = perf_counter()
        async with asyncio.TaskGroup() as tg:
            for index, query in enumerate(queries):
                tg.create_task(_search_one(index, query))

        results = [outcome for outcome in outcomes if outcome is not None]
        succeeded = sum(1 for outcome in results if outcome.success)
        log.info(
            "executor.batch_completed",
            duration_ms=int((perf_counter() - start) * 1000),
            succeeded=succeeded,
            failed=len(results) - succeeded,
        )
        return results
