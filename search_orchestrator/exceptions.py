"""Domain-specific exceptions for the search orchestration pipeline.

Every exception carries a machine-readable ``code``. Components raise them;
``SearchOrchestrator`` converts them into ``OperationResult`` errors so none
escapes the orchestration boundary.
"""

from typing import Any


class SearchOrchestrationError(Exception):
    """Base exception for search orchestration errors."""

    code: str = "ORCHESTRATION_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: Any = None) -> None:
        self.message = message
        self.details = details
        if code is not None:
            self.code = code
        super().__init__(message)


# --- External service errors ---


class ServiceError(SearchOrchestrationError):
    """Error reported by an external service, with an HTTP-status-like code when one exists."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
        details: Any = None,
    ) -> None:
        self.status = status
        super().__init__(message, code=code, details=details)


class GenerationError(ServiceError):
    """Raised when the generation service call fails or returns no text."""

    code = "GENERATION_FAILED"


class SearchServiceError(ServiceError):
    """Raised when a single search service call fails."""

    code = "SEARCH_FAILED"


# --- Pipeline stage errors ---


class QueryGenerationError(SearchOrchestrationError):
    """Raised when initial query generation fails. Callers fall back to the original query."""

    code = "QUERY_GENERATION_FAILED"

    def __init__(self, query: str, reason: str) -> None:
        self.query = query
        self.reason = reason
        super().__init__(f"Failed to generate search queries for '{query}': {reason}")


class AnalysisError(SearchOrchestrationError):
    """Raised when the completeness analysis call fails. Treated as an implicit stop.

    ``ANALYSIS_FAILED`` marks a failed generation call, ``ANALYSIS_ERROR``
    anything else that went wrong while analyzing.
    """

    code = "ANALYSIS_FAILED"

    def __init__(self, reason: str, *, code: str | None = None) -> None:
        self.reason = reason
        prefix = "Result analysis error" if code == "ANALYSIS_ERROR" else "Analysis generation failed"
        super().__init__(f"{prefix}: {reason}", code=code)


class FollowupGenerationError(SearchOrchestrationError):
    """Raised when follow-up query generation fails. Treated as an empty follow-up list."""

    code = "FOLLOWUP_GENERATION_FAILED"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Follow-up query generation failed: {reason}")


class SearchPhaseError(SearchOrchestrationError):
    """Raised when every query of a search batch failed."""

    code = "INITIAL_SEARCH_FAILED"

    def __init__(self, attempted: int, failed: int, *, code: str | None = None) -> None:
        self.attempted = attempted
        self.failed = failed
        super().__init__(
            f"All {attempted} search attempts failed. Cannot proceed with synthesis.",
            code=code,
        )


class NoResultsError(SearchOrchestrationError):
    """Raised when searches succeeded but returned nothing to synthesize from."""

    code = "NO_RESULTS"

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"No search results found for '{query}'")


class SynthesisError(SearchOrchestrationError):
    """Raised when the final answer generation fails. Always terminal."""

    code = "FINAL_GENERATION_FAILED"

    def __init__(self, reason: str, *, code: str | None = None) -> None:
        self.reason = reason
        super().__init__(f"Failed to generate final answer: {reason}", code=code)


class SearchCancelledError(SearchOrchestrationError):
    """Raised when the caller's cancel signal is observed between phases."""

    code = "CANCELLED"

    def __init__(self, phase: str) -> None:
        self.phase = phase
        super().__init__(f"Search cancelled during {phase}")
