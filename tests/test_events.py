"""Tests for SSE event models and formatting."""

import json

from search_orchestrator.events import (
    AnswerChunkEvent,
    AnswerCompleteEvent,
    AnswerStartEvent,
    CompleteEvent,
    ErrorEvent,
    HeartbeatEvent,
    IterationStoppedEvent,
    PhaseStartEvent,
    PhaseWarningEvent,
    SearchBatchEvent,
    SSEEventType,
)


def _parse(formatted: str) -> tuple[str, dict]:
    event_line, data_line = formatted.strip().split("\n")
    return event_line.removeprefix("event: "), json.loads(data_line.removeprefix("data: "))


class TestSSEEventFormat:
    """Tests for SSEEvent.format()."""

    def test__phase_start_event__formats_correctly(self) -> None:
        event = PhaseStartEvent(data={"phase": "searching", "iteration": 1})

        formatted = event.format()

        assert formatted.startswith("event: phase_start\n")
        assert formatted.endswith("\n\n")
        assert _parse(formatted) == ("phase_start", {"phase": "searching", "iteration": 1})

    def test__search_batch_event__serializes_counts(self) -> None:
        event = SearchBatchEvent(data={"iteration": 2, "succeeded": 2, "failed": 1, "unique_results": 7})

        name, data = _parse(event.format())

        assert name == "search_batch"
        assert data["unique_results"] == 7

    def test__iteration_stopped_event__carries_reason(self) -> None:
        event = IterationStoppedEvent(data={"reason": "diminishing_returns", "iterations": 2})
        assert _parse(event.format())[1]["reason"] == "diminishing_returns"

    def test__warning_event__has_string_payload(self) -> None:
        event = PhaseWarningEvent(data={"phase": "searching", "warning": "1 of 3 searches failed"})
        assert event.event == SSEEventType.PHASE_WARNING
        assert _parse(event.format())[1]["warning"] == "1 of 3 searches failed"

    def test__answer_events__format_in_stream_order(self) -> None:
        frames = [
            AnswerStartEvent().format(),
            AnswerChunkEvent(data={"text": "Hello "}).format(),
            AnswerCompleteEvent(data={"answer": "Hello", "elapsed_ms": 10}).format(),
        ]

        names = [_parse(frame)[0] for frame in frames]

        assert names == ["answer_start", "answer_chunk", "answer_complete"]

    def test__answer_start_event__has_empty_payload(self) -> None:
        assert _parse(AnswerStartEvent().format())[1] == {}

    def test__complete_event__embeds_nested_payload(self) -> None:
        payload = {"query": "q", "answer": "a [1]", "sources": [{"url": "https://a.example", "rank": 1}]}

        _, data = _parse(CompleteEvent(data=payload).format())

        assert data["sources"][0]["rank"] == 1

    def test__error_event__formats_code_and_message(self) -> None:
        event = ErrorEvent(data={"code": "NO_RESULTS", "error": "No relevant search results found."})
        assert _parse(event.format()) == (
            "error",
            {"code": "NO_RESULTS", "error": "No relevant search results found."},
        )


class TestHeartbeatEvent:
    """Tests for HeartbeatEvent."""

    def test__heartbeat__formats_as_sse_comment(self) -> None:
        assert HeartbeatEvent().format() == ": keepalive\n\n"

    def test__heartbeat__keeps_event_type(self) -> None:
        assert HeartbeatEvent().event == SSEEventType.HEARTBEAT
