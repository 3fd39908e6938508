"""Search Orchestrator - iterative web search with cited answer synthesis"""

__version__ = "0.1.0"

from search_orchestrator.config import OrchestratorConfig
from search_orchestrator.exceptions import (
    AnalysisError,
    FollowupGenerationError,
    GenerationError,
    NoResultsError,
    QueryGenerationError,
    SearchCancelledError,
    SearchOrchestrationError,
    SearchPhaseError,
    SearchServiceError,
    ServiceError,
    SynthesisError,
)
from search_orchestrator.models import (
    AggregatedResultSet,
    ConfigurationStatus,
    ErrorInfo,
    FinalAnswer,
    FocusMode,
    GapAnalysis,
    GapCategories,
    OperationResult,
    SearchContext,
    SearchResponse,
    SearchResultItem,
    SearchSource,
    StopReason,
)
from search_orchestrator.orchestrator import SearchOrchestrator

__all__ = [
    # Config
    "OrchestratorConfig",
    # Models
    "FocusMode",
    "SearchContext",
    "SearchResultItem",
    "SearchResponse",
    "AggregatedResultSet",
    "GapCategories",
    "GapAnalysis",
    "StopReason",
    "SearchSource",
    "FinalAnswer",
    "ConfigurationStatus",
    "ErrorInfo",
    "OperationResult",
    # Exceptions
    "SearchOrchestrationError",
    "ServiceError",
    "GenerationError",
    "SearchServiceError",
    "QueryGenerationError",
    "AnalysisError",
    "FollowupGenerationError",
    "SearchPhaseError",
    "NoResultsError",
    "SynthesisError",
    "SearchCancelledError",
    # Orchestration
    "SearchOrchestrator",
]
