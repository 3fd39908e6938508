"""Clients for the external generation and search services."""

from search_orchestrator.clients.generation import (
    GenerationClient,
    clear_agent_cache,
    create_generation_agent,
    create_generation_model,
    get_generation_agent,
)
from search_orchestrator.clients.search import (
    CustomSearchClient,
    SearchOptions,
    clean_html,
    format_for_synthesis,
    optimize_query_for_focus,
    search_options_for_focus,
)

__all__ = [
    # Generation
    "GenerationClient",
    "create_generation_agent",
    "create_generation_model",
    "get_generation_agent",
    "clear_agent_cache",
    # Search
    "CustomSearchClient",
    "SearchOptions",
    "clean_html",
    "format_for_synthesis",
    "optimize_query_for_focus",
    "search_options_for_focus",
]
