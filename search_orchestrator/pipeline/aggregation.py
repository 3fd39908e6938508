"""Merging, URL deduplication and capping of search result batches."""

from collections.abc import Iterable, Sequence

from search_orchestrator.clients.search import clean_html, format_for_synthesis
from search_orchestrator.models import (
    AggregatedResultSet,
    SearchResponse,
    SearchResultItem,
    SearchSource,
)


def unique_items(batches: Iterable[SearchResponse]) -> list[SearchResultItem]:
    """Items across ``batches`` with first-seen URL kept, uncapped."""
    seen: set[str] = set()
    unique = []
    for batch in batches:
        for item in batch.items:
            if item.url in seen:
                continue
            seen.add(item.url)
            unique.append(item)
    return unique


def unique_count(batches: Iterable[SearchResponse]) -> int:
    """Distinct URLs across ``batches``, ignoring any cap."""
    return len(unique_items(batches))


def readable_items(items: Sequence[SearchResultItem]) -> list[SearchResultItem]:
    """Items whose cleaned title or snippet has any text."""
    return [
        item
        for item in items
        if clean_html(item.html_title or item.title) or clean_html(item.html_snippet or item.snippet)
    ]


def extract_contents(items: Sequence[SearchResultItem]) -> list[str]:
    """``Title/URL/Content`` text per readable item, in order."""
    return [format_for_synthesis(item) for item in readable_items(items)]


def to_sources(result_set: AggregatedResultSet) -> list[SearchSource]:
    return [
        SearchSource(
            title=item.title,
            url=item.url,
            snippet=item.snippet,
            display_url=item.display_url,
            rank=rank,
        )
        for rank, item in enumerate(result_set.items, start=1)
    ]


class ResultAggregator:
    """Pure merge of result batches: first URL wins, insertion order kept, capped."""

    def __init__(self, max_results: int = 10) -> None:
        self.max_results = max_results

    def aggregate(self, batches: Iterable[SearchResponse]) -> AggregatedResultSet:
        return AggregatedResultSet(items=unique_items(batches)[: self.max_results])

    def as_batch(self, result_set: AggregatedResultSet) -> SearchResponse:
        """Wrap an aggregated set so it can be aggregated again."""
        return SearchResponse(items=list(result_set.items), total_results=len(result_set.items))
