"""SSE event models for search orchestration progress and answer streaming."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SSEEventType(str, Enum):
    """SSE event types emitted by the orchestrator and the answer stream."""

    # Iterative orchestration progress
    PHASE_START = "phase_start"
    QUERIES_GENERATED = "queries_generated"
    SEARCH_BATCH = "search_batch"
    ANALYSIS_COMPLETE = "analysis_complete"
    ITERATION_STOPPED = "iteration_stopped"
    PHASE_WARNING = "phase_warning"

    # Single-pass answer streaming
    SEARCHING = "searching"
    SOURCES = "sources"
    ANSWER_START = "answer_start"
    ANSWER_CHUNK = "answer_chunk"
    ANSWER_COMPLETE = "answer_complete"

    HEARTBEAT = "heartbeat"
    COMPLETE = "complete"
    ERROR = "error"


class SSEEvent(BaseModel):
    """Base SSE event model."""

    event: SSEEventType = Field(description="Event type identifier")
    data: dict[str, Any] = Field(description="Event payload data")

    def format(self) -> str:
        """Format as SSE message: 'event: type\\ndata: json\\n\\n'."""
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"


class PhaseStartEvent(SSEEvent):
    """Event emitted when an orchestration phase begins."""

    event: SSEEventType = SSEEventType.PHASE_START
    data: dict[str, Any] = Field(
        description="Phase identifier and current iteration",
        examples=[{"phase": "searching", "iteration": 1}],
    )


class QueriesGeneratedEvent(SSEEvent):
    """Event emitted once the initial (or follow-up) queries are known."""

    event: SSEEventType = SSEEventType.QUERIES_GENERATED
    data: dict[str, Any] = Field(
        description="Queries about to be searched",
        examples=[
            {
                "iteration": 1,
                "queries": [
                    "climate change ocean ecosystems impact",
                    "ocean warming marine biodiversity effects",
                ],
            }
        ],
    )


class SearchBatchEvent(SSEEvent):
    """Event emitted after a concurrent search batch settles."""

    event: SSEEventType = SSEEventType.SEARCH_BATCH
    data: dict[str, Any] = Field(
        description="Batch outcome counts and accumulated unique results",
        examples=[{"iteration": 1, "succeeded": 3, "failed": 0, "unique_results": 9}],
    )


class AnalysisCompleteEvent(SSEEvent):
    """Event emitted after a completeness analysis."""

    event: SSEEventType = SSEEventType.ANALYSIS_COMPLETE
    data: dict[str, Any] = Field(
        description="Completeness score and gap summary",
        examples=[
            {
                "iteration": 1,
                "completeness": 65,
                "confidence_level": 75,
                "needs_more_search": True,
                "information_gaps": ["Missing specific temperature data"],
            }
        ],
    )


class IterationStoppedEvent(SSEEvent):
    """Event emitted when the refinement loop hands off to synthesis."""

    event: SSEEventType = SSEEventType.ITERATION_STOPPED
    data: dict[str, Any] = Field(
        description="Stop reason and iteration count",
        examples=[{"reason": "completeness_reached", "iterations": 2}],
    )


class PhaseWarningEvent(SSEEvent):
    """Event emitted when a non-fatal issue occurs during a phase."""

    event: SSEEventType = SSEEventType.PHASE_WARNING
    data: dict[str, str] = Field(
        description="Warning details",
        examples=[
            {
                "phase": "searching",
                "warning": "1 of 3 searches failed, continuing with partial results",
            }
        ],
    )


class SearchingEvent(SSEEvent):
    """Event emitted when the streaming path starts its search."""

    event: SSEEventType = SSEEventType.SEARCHING
    data: dict[str, Any] = Field(
        description="Query being searched",
        examples=[{"query": "How does climate change affect ocean ecosystems?", "focus_mode": "general"}],
    )


class SourcesEvent(SSEEvent):
    """Event carrying the numbered sources the answer will cite."""

    event: SSEEventType = SSEEventType.SOURCES
    data: dict[str, Any] = Field(
        description="Ranked sources",
        examples=[
            {
                "sources": [
                    {
                        "title": "Ocean warming - Wikipedia",
                        "url": "https://en.wikipedia.org/wiki/Ocean_heat_content",
                        "snippet": "Ocean heat content is...",
                        "display_url": "en.wikipedia.org",
                        "rank": 1,
                    }
                ]
            }
        ],
    )


class AnswerStartEvent(SSEEvent):
    event: SSEEventType = SSEEventType.ANSWER_START
    data: dict[str, Any] = Field(default_factory=dict)


class AnswerChunkEvent(SSEEvent):
    """One incremental piece of answer text."""

    event: SSEEventType = SSEEventType.ANSWER_CHUNK
    data: dict[str, str] = Field(examples=[{"text": "Ocean warming drives coral bleaching [1]"}])


class AnswerCompleteEvent(SSEEvent):
    """Event carrying the full answer after the last chunk."""

    event: SSEEventType = SSEEventType.ANSWER_COMPLETE
    data: dict[str, Any] = Field(
        description="Full answer text and elapsed time",
        examples=[{"answer": "Ocean warming drives coral bleaching [1]...", "elapsed_ms": 5200}],
    )


class HeartbeatEvent(SSEEvent):
    """Keepalive written while a stream is idle.

    Rendered as the SSE comment ``: keepalive``, which clients skip.
    """

    event: SSEEventType = SSEEventType.HEARTBEAT
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Empty data for heartbeat",
    )

    def format(self) -> str:
        return ": keepalive\n\n"


class CompleteEvent(SSEEvent):
    """Event emitted when an iterative search completes successfully."""

    event: SSEEventType = SSEEventType.COMPLETE
    data: dict[str, Any] = Field(
        description="Full FinalAnswer serialized",
        examples=[
            {
                "query": "How does climate change affect ocean ecosystems?",
                "focus_mode": "general",
                "answer": "Ocean warming drives coral bleaching [1]...",
                "sources": [],
                "elapsed_ms": 8400,
                "iterations": 2,
            }
        ],
    )


class ErrorEvent(SSEEvent):
    """Event emitted when a search run fails."""

    event: SSEEventType = SSEEventType.ERROR
    data: dict[str, str] = Field(
        description="Error code and user-facing message",
        examples=[
            {
                "code": "INITIAL_SEARCH_FAILED",
                "error": "Unable to retrieve search results. Please try again.",
            }
        ],
    )
