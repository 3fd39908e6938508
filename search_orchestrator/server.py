"""FastAPI application for the search orchestrator service."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from functools import lru_cache

import structlog
from fastapi import FastAPI, Query, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, ValidationError

from search_orchestrator import __version__
from search_orchestrator.config import OrchestratorConfig
from search_orchestrator.events import CompleteEvent, ErrorEvent, HeartbeatEvent, SSEEvent, SSEEventType
from search_orchestrator.models import ConfigurationStatus, FinalAnswer, SearchContext
from search_orchestrator.orchestrator import SearchOrchestrator

log = structlog.get_logger("search_orchestrator.server")

# SSE Configuration
HEARTBEAT_INTERVAL = 30  # seconds
MAX_DURATION = 600  # 10 minutes
MAX_QUEUE_SIZE = 100  # Bounded queue to prevent memory leaks

EventProducer = Callable[[Callable[[SSEEvent], Awaitable[None]], asyncio.Event], Awaitable[None]]


# --- Request/Response schemas ---


class SearchRequest(SearchContext):
    """Incoming search request."""


class ErrorResponse(BaseModel):
    """Structured error response."""

    error: str = Field(
        description="Machine-readable error code",
        examples=["INITIAL_SEARCH_FAILED"],
    )
    detail: str = Field(
        description="User-friendly error message explaining what went wrong",
        examples=["Unable to retrieve search results. Please try again."],
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(
        description="Service health status",
        examples=["ok"],
    )
    version: str = Field(
        default="",
        description="Service version (only included in /health endpoint)",
        examples=["0.1.0"],
    )


# --- Error mapping ---

# Map orchestration error codes to user-friendly messages
_SAFE_ERROR_MESSAGES: dict[str, str] = {
    "INITIAL_SEARCH_FAILED": "Unable to retrieve search results. Please try again.",
    "SEARCH_FAILED": "Unable to retrieve search results. Please try again.",
    "NO_RESULTS": "No search results were found for this query. Please try a different query.",
    "FINAL_GENERATION_FAILED": "Unable to generate an answer. Please try again.",
    "NO_CONTENT": "The answer came back empty. Please try again.",
    "CANCELLED": "The search was cancelled.",
}
_DEFAULT_ERROR_MESSAGE = "An error occurred processing your request."
_SERVER_ERROR_CODES = {"ORCHESTRATION_ERROR"}


def _safe_message(code: str) -> str:
    return _SAFE_ERROR_MESSAGES.get(code, _DEFAULT_ERROR_MESSAGE)


def _safe_error_event(event: SSEEvent) -> SSEEvent:
    if event.event != SSEEventType.ERROR:
        return event
    code = str(event.data.get("code", "ORCHESTRATION_ERROR"))
    return ErrorEvent(data={"code": code, "error": _safe_message(code)})


async def _handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    log.warning("request.validation_error", detail=str(exc))
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(error="ValidationError", detail=str(exc)).model_dump(),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.unexpected_error", error=str(exc))
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="InternalServerError", detail="An unexpected error occurred.").model_dump(),
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> SearchOrchestrator:
    """Orchestrator configured from the environment, built on first use."""
    try:
        config = OrchestratorConfig.from_env()
    except ValidationError as e:
        raise RuntimeError(f"Search orchestrator is not configured: {e.error_count()} invalid setting(s)") from e
    return SearchOrchestrator(config)


# --- SSE plumbing ---


async def _stream_events(request: Request, producer: EventProducer) -> AsyncIterator[str]:
    """Run ``producer`` in the background and relay its events as SSE.

    Sends heartbeats, stops at ``MAX_DURATION`` and cancels the producer when
    the client disconnects.
    """
    # Bounded queue to prevent memory leaks
    event_queue: asyncio.Queue[SSEEvent] = asyncio.Queue(maxsize=MAX_QUEUE_SIZE)
    producer_done = asyncio.Event()
    cancel_event = asyncio.Event()

    async def emit(event: SSEEvent) -> None:
        """Callback for the producer to emit events (with backpressure)."""
        try:
            await asyncio.wait_for(event_queue.put(_safe_error_event(event)), timeout=5.0)
        except asyncio.TimeoutError:
            log.warning("event_queue_full", event=event.event.value)

    async def run_producer() -> None:
        try:
            await producer(emit, cancel_event)
        except Exception as e:
            log.error("stream.producer_error", error=str(e), exc_info=True)
            await event_queue.put(ErrorEvent(data={"code": "ORCHESTRATION_ERROR", "error": _DEFAULT_ERROR_MESSAGE}))
        finally:
            producer_done.set()

    producer_task = asyncio.create_task(run_producer())

    loop = asyncio.get_running_loop()
    start_time = loop.time()
    next_heartbeat = start_time + HEARTBEAT_INTERVAL

    try:
        while not producer_done.is_set() or not event_queue.empty():
            current_time = loop.time()
            elapsed = current_time - start_time

            if elapsed > MAX_DURATION:
                log.warning("stream_timeout", elapsed=elapsed, max=MAX_DURATION)
                cancel_event.set()
                producer_task.cancel()
                yield ErrorEvent(data={"code": "TIMEOUT", "error": "Search timeout - exceeded 10 minutes"}).format()
                break

            if await request.is_disconnected():
                log.info("client_disconnected", elapsed=elapsed)
                cancel_event.set()
                producer_task.cancel()
                break

            # Heartbeat without drift accumulation
            if current_time >= next_heartbeat:
                yield HeartbeatEvent().format()
                next_heartbeat += HEARTBEAT_INTERVAL

            try:
                event = await asyncio.wait_for(event_queue.get(), timeout=0.1)
                yield event.format()
            except asyncio.TimeoutError:
                continue
    finally:
        producer_task.cancel()
        try:
            await asyncio.wait_for(producer_task, timeout=10.0)
        except asyncio.CancelledError:
            log.info("stream.producer_cancelled")
        except asyncio.TimeoutError:
            log.error("stream.producer_cancellation_timeout")
        except Exception as e:
            log.exception("stream.producer_failed_during_cleanup", error=str(e))


def _sse_response(events: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(
        events,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable proxy buffering
            "Connection": "keep-alive",
        },
    )


# --- App factory ---


def get_app(orchestrator: SearchOrchestrator | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``orchestrator`` defaults to one configured from environment variables.
    """
    application = FastAPI(
        title="Search Orchestrator Service",
        description="""
Conversational web search with iterative refinement and cited answers.

## Overview

Answers a natural-language question by combining web search with a generative model:

1. **Query generation** - Rewrites the question into several diverse search queries
2. **Search** - Runs the queries concurrently and merges results by URL
3. **Completeness analysis** - Scores coverage and names concrete information gaps
4. **Follow-up search** - Targets the gaps with new queries until coverage is sufficient
5. **Synthesis** - Writes a numbered-citation answer from every gathered source

## Focus modes

`general`, `academic`, `creative`, `news`, `technical`, `medical` and `legal` adjust
prompt wording, search restrictions and generation temperature.
        """,
        version=__version__,
        license_info={
            "name": "Apache 2.0",
            "url": "https://www.apache.org/licenses/LICENSE-2.0",
        },
    )

    application.add_exception_handler(ValidationError, _handle_validation_error)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, _handle_unexpected_error)

    def _orchestrator() -> SearchOrchestrator:
        return orchestrator or get_orchestrator()

    @application.post(
        "/search",
        response_model=FinalAnswer,
        status_code=status.HTTP_200_OK,
        summary="Answer a Query with Iterative Search",
        description="""
Runs the full iterative search workflow and returns a cited answer.

Refinement stops when the analysis reports sufficient completeness, no gaps remain,
follow-up searches stop adding new sources, or the iteration ceiling is reached.
        """,
        tags=["Search"],
        response_description="Answer text, ranked sources and iteration metadata",
        responses={
            200: {"description": "Answer generated successfully", "model": FinalAnswer},
            422: {
                "description": "Search could not produce an answer",
                "model": ErrorResponse,
                "content": {
                    "application/json": {
                        "examples": {
                            "search_failed": {
                                "summary": "All Searches Failed",
                                "value": {
                                    "error": "INITIAL_SEARCH_FAILED",
                                    "detail": _SAFE_ERROR_MESSAGES["INITIAL_SEARCH_FAILED"],
                                },
                            },
                            "generation_failed": {
                                "summary": "Answer Generation Failed",
                                "value": {
                                    "error": "FINAL_GENERATION_FAILED",
                                    "detail": _SAFE_ERROR_MESSAGES["FINAL_GENERATION_FAILED"],
                                },
                            },
                        }
                    }
                },
            },
            500: {
                "description": "Internal server error",
                "model": ErrorResponse,
                "content": {
                    "application/json": {
                        "example": {
                            "error": "InternalServerError",
                            "detail": "An unexpected error occurred.",
                        }
                    }
                },
            },
        },
    )
    async def search(body: SearchRequest) -> FinalAnswer | JSONResponse:
        result = await _orchestrator().search(SearchContext(**body.model_dump()))
        if result.success and result.data is not None:
            return result.data

        error = result.error
        code = error.code if error else "ORCHESTRATION_ERROR"
        log.warning("request.search_failed", code=code, detail=error.message if error else "")
        if code in _SERVER_ERROR_CODES:
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error="InternalServerError", detail="An unexpected error occurred.").model_dump(),
            )
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(error=code, detail=_safe_message(code)).model_dump(),
        )

    @application.post(
        "/search/stream",
        response_class=StreamingResponse,
        responses={
            200: {
                "description": "Server-Sent Events stream of search progress",
                "content": {"text/event-stream": {"example": "event: answer_chunk\ndata: {...}\n\n"}},
            },
            422: {"model": ErrorResponse},
        },
        summary="Answer a query with streaming updates",
        description="""
Streams a search via SSE.

**Default (single pass):** `searching`, `sources`, `answer_start`, `answer_chunk`..., then
`answer_complete` or `error`.

**`?iterative=true`:** progress of the full iterative workflow (`phase_start`,
`queries_generated`, `search_batch`, `analysis_complete`, `iteration_stopped`,
`phase_warning`), ending with `complete` (full answer) or `error`.

Heartbeats are sent every 30s as `: keepalive` comments. The stream closes after
completion or a 10-minute timeout.
        """,
        tags=["Search"],
    )
    async def search_stream(
        request: Request,
        body: SearchRequest,
        iterative: bool = Query(default=False, description="Stream the full iterative workflow"),
    ) -> StreamingResponse:
        context = SearchContext(**body.model_dump())
        orch = _orchestrator()

        async def single_pass(emit: Callable[[SSEEvent], Awaitable[None]], cancel_event: asyncio.Event) -> None:
            async for event in orch.search_stream(context):
                await emit(event)

        async def iterative_run(emit: Callable[[SSEEvent], Awaitable[None]], cancel_event: asyncio.Event) -> None:
            result = await orch.search(context, event_callback=emit, cancel_event=cancel_event)
            if result.success and result.data is not None:
                await emit(CompleteEvent(data=result.data.model_dump(mode="json")))
            else:
                code = result.error.code if result.error else "ORCHESTRATION_ERROR"
                await emit(ErrorEvent(data={"code": code, "error": _safe_message(code)}))

        return _sse_response(_stream_events(request, iterative_run if iterative else single_pass))

    @application.get(
        "/config/validate",
        response_model=ConfigurationStatus,
        status_code=status.HTTP_200_OK,
        summary="Validate Service Credentials",
        description="""
Issues one minimal call against the generation service and one against the search
service and reports which of them accepted the configured credentials.
        """,
        tags=["Health"],
    )
    async def validate_config() -> ConfigurationStatus | JSONResponse:
        result = await _orchestrator().validate_configuration()
        if result.success and result.data is not None:
            return result.data
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=result.error.code if result.error else "VALIDATION_ERROR",
                detail="Configuration validation failed.",
            ).model_dump(),
        )

    @application.get(
        "/health",
        response_model=HealthResponse,
        status_code=status.HTTP_200_OK,
        summary="Health Check",
        description="""
General health check endpoint that returns service status and version.

Use this endpoint for monitoring and smoke testing the service.
        """,
        tags=["Health"],
        response_description="Service health status and version",
    )
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @application.get(
        "/health/liveness",
        response_model=HealthResponse,
        status_code=status.HTTP_200_OK,
        summary="Liveness Probe",
        description="""
Kubernetes liveness probe endpoint.

Returns 200 OK if the service is running and can accept requests.
        """,
        tags=["Health"],
        response_description="Service is alive and accepting requests",
    )
    async def liveness() -> HealthResponse:
        return HealthResponse(status="alive")

    @application.get(
        "/health/readiness",
        response_model=HealthResponse,
        status_code=status.HTTP_200_OK,
        summary="Readiness Probe",
        description="""
Kubernetes readiness probe endpoint.

Returns 200 OK if the service is ready to handle search requests.
        """,
        tags=["Health"],
        response_description="Service is ready to handle search requests",
    )
    async def readiness() -> HealthResponse:
        return HealthResponse(status="ready")

    return application


app = get_app()
