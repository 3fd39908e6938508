"""Iterative search orchestration.

``SearchOrchestrator.search`` drives the state machine

    initializing -> searching -> analyzing -> deciding -> synthesizing -> done

looping from deciding back to searching with gap-targeted follow-up queries
until a stop condition fires. Any phase may end in ``failed``. Every outcome
is returned as an ``OperationResult``; no exception crosses this boundary.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from time import perf_counter
from typing import Any
from uuid import uuid4

from search_orchestrator.clients.generation import GenerationClient, get_generation_agent
from search_orchestrator.clients.search import CustomSearchClient
from search_orchestrator.config import OrchestratorConfig
from search_orchestrator.events import (
    AnalysisCompleteEvent,
    AnswerChunkEvent,
    AnswerCompleteEvent,
    AnswerStartEvent,
    ErrorEvent,
    IterationStoppedEvent,
    PhaseStartEvent,
    PhaseWarningEvent,
    QueriesGeneratedEvent,
    SearchBatchEvent,
    SearchingEvent,
    SourcesEvent,
    SSEEvent,
)
from search_orchestrator.exceptions import (
    AnalysisError,
    FollowupGenerationError,
    NoResultsError,
    QueryGenerationError,
    SearchCancelledError,
    SearchOrchestrationError,
    SearchPhaseError,
    SearchServiceError,
)
from search_orchestrator.logging import get_logger, run_context
from search_orchestrator.models import (
    AggregatedResultSet,
    ConfigurationStatus,
    FinalAnswer,
    IterationState,
    OperationResult,
    OrchestrationPhase,
    SearchContext,
    SearchOutcome,
    SearchResponse,
    StopReason,
)
from search_orchestrator.pipeline import (
    AnswerSynthesizer,
    CompletenessAnalyzer,
    FollowupQueryGenerator,
    MultiSearchExecutor,
    QueryGenerator,
    ResultAggregator,
    extract_contents,
    readable_items,
    to_sources,
    unique_count,
)

log = get_logger("search_orchestrator.orchestrator")

EventCallback = Callable[[SSEEvent], Awaitable[None]]


def _successful(outcomes: list[SearchOutcome]) -> list[SearchResponse]:
    return [outcome.response for outcome in outcomes if outcome.success and outcome.response is not None]


def _check_cancelled(cancel_event: asyncio.Event | None, phase: OrchestrationPhase) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelledError(phase.value)


class SearchOrchestrator:
    """Entry point: iterative ``search``, single-pass ``search_stream`` and ``validate_configuration``.

    Clients are built from ``config`` unless injected. Instances hold no
    per-request state and may serve concurrent requests.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        *,
        generation: GenerationClient | None = None,
        search: CustomSearchClient | None = None,
    ) -> None:
        self.config = config
        self.generation = generation or GenerationClient(
            get_generation_agent(config.gemini_api_key, config.generation_model)
        )
        self.search_client = search or CustomSearchClient(config.custom_search_api_key, config.search_engine_id)
        self._build_pipeline()

    def _build_pipeline(self) -> None:
        config = self.config
        self.query_generator = QueryGenerator(self.generation, config.max_generated_queries)
        self.executor = MultiSearchExecutor(self.search_client, config.max_search_results)
        self.aggregator = ResultAggregator(config.max_search_results)
        self.analyzer = CompletenessAnalyzer(self.generation, config.completeness_threshold)
        self.followup_generator = FollowupQueryGenerator(self.generation, config.max_followup_queries)
        self.synthesizer = AnswerSynthesizer(self.generation)

    def update_configuration(self, **changes: Any) -> None:
        """Apply validated config changes, rebuilding clients whose credentials changed."""
        previous = self.config
        self.config = previous.with_updates(**changes)

        if (self.config.gemini_api_key, self.config.generation_model) != (
            previous.gemini_api_key,
            previous.generation_model,
        ):
            self.generation = GenerationClient(
                get_generation_agent(self.config.gemini_api_key, self.config.generation_model)
            )
        if (self.config.custom_search_api_key, self.config.search_engine_id) != (
            previous.custom_search_api_key,
            previous.search_engine_id,
        ):
            self.search_client = CustomSearchClient(self.config.custom_search_api_key, self.config.search_engine_id)

        self._build_pipeline()
        log.info("orchestrator.configuration_updated", changed=sorted(changes))

    # --- Iterative search ---

    async def search(
        self,
        context: SearchContext,
        *,
        event_callback: EventCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> OperationResult[FinalAnswer]:
        """Answer ``context.query`` with iterative search refinement.

        Args:
            context: Query and focus mode for this run.
            event_callback: Async observer receiving progress events.
            cancel_event: When set, the run stops before its next phase with ``CANCELLED``.

        Returns:
            ``OperationResult`` holding the ``FinalAnswer`` or an error code among
            ``INITIAL_SEARCH_FAILED``, ``NO_RESULTS``, ``FINAL_GENERATION_FAILED``,
            ``NO_CONTENT``, ``CANCELLED`` and ``ORCHESTRATION_ERROR``.
        """
        correlation_id = str(uuid4())[:8]
        state = IterationState()

        async def emit(event: SSEEvent) -> None:
            if event_callback is None:
                return
            try:
                await event_callback(event)
            except Exception as e:
                log.warning("orchestrator.event_callback_failed", event_type=event.event.value, error=str(e))

        with run_context(correlation_id=correlation_id, query=context.query, focus_mode=context.focus_mode.value):
            log.info("orchestrator.started")
            try:
                answer = await self._run(context, state, emit, cancel_event)
            except SearchOrchestrationError as e:
                state.phase = OrchestrationPhase.FAILED
                log.warning("orchestrator.failed", code=e.code, error=e.message, iteration=state.iteration_index)
                return OperationResult.fail(e.code, e.message, status=getattr(e, "status", None), details=e.details)
            except Exception as e:
                state.phase = OrchestrationPhase.FAILED
                log.exception("orchestrator.unexpected_error", error=str(e))
                return OperationResult.fail(
                    "ORCHESTRATION_ERROR",
                    str(e) or "Search orchestration failed",
                    details=type(e).__name__,
                )
            return OperationResult.ok(answer)

    async def _run(
        self,
        context: SearchContext,
        state: IterationState,
        emit: EventCallback,
        cancel_event: asyncio.Event | None,
    ) -> FinalAnswer:
        run_start = perf_counter()

        # Phase 1: initial queries + search
        _check_cancelled(cancel_event, state.phase)
        queries = await self._initial_queries(context, emit)

        state.phase = OrchestrationPhase.SEARCHING
        _check_cancelled(cancel_event, state.phase)
        await emit(PhaseStartEvent(data={"phase": state.phase.value, "iteration": state.iteration_index}))
        phase_start = perf_counter()
        outcomes = await self.executor.search_all(queries, context)
        state.executed_queries.extend(queries)
        batches = _successful(outcomes)
        await self._emit_batch(emit, state, outcomes, batches)

        if not batches:
            log.error("orchestrator.initial_search.failed", attempted=len(outcomes))
            raise SearchPhaseError(attempted=len(outcomes), failed=len(outcomes))
        state.accumulated_batches.extend(batches)
        log.info(
            "orchestrator.initial_search.completed",
            duration_ms=int((perf_counter() - phase_start) * 1000),
            succeeded=len(batches),
            failed=len(outcomes) - len(batches),
        )

        # Phase 2: refinement loop
        state.stop_reason = await self._refine(context, state, emit, cancel_event)
        log.info("orchestrator.iteration.stopped", reason=state.stop_reason.value, iterations=state.iteration_index)
        await emit(
            IterationStoppedEvent(data={"reason": state.stop_reason.value, "iterations": state.iteration_index})
        )

        # Phase 3: synthesis over every accumulated batch
        state.phase = OrchestrationPhase.SYNTHESIZING
        _check_cancelled(cancel_event, state.phase)
        await emit(PhaseStartEvent(data={"phase": state.phase.value, "iteration": state.iteration_index}))
        result_set = AggregatedResultSet(
            items=readable_items(self.aggregator.aggregate(state.accumulated_batches).items)
        )
        contents = extract_contents(result_set.items)
        if not contents:
            raise NoResultsError(context.query)

        answer = await self.synthesizer.synthesize(context, contents)
        state.phase = OrchestrationPhase.DONE

        elapsed_ms = int((perf_counter() - run_start) * 1000)
        log.info("orchestrator.completed", elapsed_ms=elapsed_ms, iterations=state.iteration_index)
        return FinalAnswer(
            query=context.query,
            focus_mode=context.focus_mode,
            answer=answer,
            sources=to_sources(result_set),
            elapsed_ms=elapsed_ms,
            iterations=state.iteration_index,
            queries=list(state.executed_queries),
            stop_reason=state.stop_reason,
            analysis=state.current_analysis,
        )

    async def _initial_queries(self, context: SearchContext, emit: EventCallback) -> list[str]:
        if not self.config.enable_query_generation:
            return [context.query]

        try:
            queries = await self.query_generator.generate(context)
        except QueryGenerationError as e:
            log.warning("orchestrator.query_generation.fallback", error=e.message)
            await emit(
                PhaseWarningEvent(
                    data={"phase": "initializing", "warning": "Query generation failed, searching the original query"}
                )
            )
            queries = [context.query]

        await emit(QueriesGeneratedEvent(data={"iteration": 1, "queries": queries}))
        return queries

    async def _refine(
        self,
        context: SearchContext,
        state: IterationState,
        emit: EventCallback,
        cancel_event: asyncio.Event | None,
    ) -> StopReason:
        """Run analysis/follow-up rounds until a stop condition fires."""
        config = self.config
        if not config.enable_iterative_search or config.max_search_iterations <= 1:
            return StopReason.ITERATION_DISABLED

        while True:
            if state.iteration_index >= config.max_search_iterations:
                return StopReason.MAX_ITERATIONS

            state.phase = OrchestrationPhase.ANALYZING
            _check_cancelled(cancel_event, state.phase)
            await emit(PhaseStartEvent(data={"phase": state.phase.value, "iteration": state.iteration_index}))
            try:
                analysis = await self.analyzer.analyze(context, state.accumulated_batches)
            except AnalysisError as e:
                log.warning("orchestrator.analysis.failed", code=e.code, error=e.message)
                await emit(
                    PhaseWarningEvent(
                        data={"phase": state.phase.value, "warning": "Analysis failed, continuing to synthesis"}
                    )
                )
                return StopReason.ANALYSIS_FAILED

            state.current_analysis = analysis
            await emit(
                AnalysisCompleteEvent(
                    data={
                        "iteration": state.iteration_index,
                        "completeness": analysis.completeness,
                        "confidence_level": analysis.confidence_level,
                        "needs_more_search": analysis.needs_more_search,
                        "information_gaps": analysis.information_gaps,
                    }
                )
            )

            state.phase = OrchestrationPhase.DECIDING
            if not analysis.needs_more_search:
                return StopReason.NO_MORE_SEARCH_NEEDED
            if analysis.completeness >= config.completeness_threshold:
                return StopReason.COMPLETENESS_REACHED
            if not analysis.information_gaps:
                return StopReason.NO_INFORMATION_GAPS

            _check_cancelled(cancel_event, state.phase)
            try:
                followups = await self.followup_generator.generate_followups(
                    context, analysis, state.executed_queries
                )
            except FollowupGenerationError as e:
                log.warning("orchestrator.followups.failed", error=e.message)
                await emit(
                    PhaseWarningEvent(
                        data={"phase": state.phase.value, "warning": "Follow-up query generation failed"}
                    )
                )
                followups = []
            if not followups:
                return StopReason.NO_FOLLOWUP_QUERIES

            next_iteration = state.iteration_index + 1
            await emit(QueriesGeneratedEvent(data={"iteration": next_iteration, "queries": followups}))

            state.phase = OrchestrationPhase.SEARCHING
            _check_cancelled(cancel_event, state.phase)
            await emit(PhaseStartEvent(data={"phase": state.phase.value, "iteration": next_iteration}))
            outcomes = await self.executor.search_all(followups, context)
            state.executed_queries.extend(followups)
            new_batches = _successful(outcomes)
            if not new_batches:
                await self._emit_batch(emit, state, outcomes, new_batches, iteration=next_iteration)
                return StopReason.FOLLOWUP_SEARCH_FAILED

            unique_before = unique_count(state.accumulated_batches)
            state.accumulated_batches.extend(new_batches)
            state.iteration_index = next_iteration
            unique_after = unique_count(state.accumulated_batches)
            await self._emit_batch(emit, state, outcomes, new_batches)
            log.info(
                "orchestrator.followup_search.completed",
                iteration=state.iteration_index,
                unique_before=unique_before,
                unique_after=unique_after,
            )

            if unique_after <= unique_before:
                return StopReason.DIMINISHING_RETURNS

    async def _emit_batch(
        self,
        emit: EventCallback,
        state: IterationState,
        outcomes: list[SearchOutcome],
        batches: list[SearchResponse],
        *,
        iteration: int | None = None,
    ) -> None:
        iteration = iteration or state.iteration_index
        failed = len(outcomes) - len(batches)
        await emit(
            SearchBatchEvent(
                data={
                    "iteration": iteration,
                    "succeeded": len(batches),
                    "failed": failed,
                    "unique_results": unique_count([*state.accumulated_batches, *batches]),
                }
            )
        )
        if failed and batches:
            await emit(
                PhaseWarningEvent(
                    data={
                        "phase": OrchestrationPhase.SEARCHING.value,
                        "warning": f"{failed} of {len(outcomes)} searches failed, continuing with partial results",
                    }
                )
            )

    # --- Single-pass streaming ---

    async def search_stream(self, context: SearchContext) -> AsyncIterator[SSEEvent]:
        """Search once with the focus-optimized query and stream the answer.

        Yields ``searching``, ``sources``, ``answer_start``, ``answer_chunk``...
        then ``answer_complete``, or ``error`` at the first failure.
        """
        start = perf_counter()
        log.info("orchestrator.stream.started", query=context.query, focus_mode=context.focus_mode.value)
        yield SearchingEvent(data={"query": context.query, "focus_mode": context.focus_mode.value})

        try:
            response = await self.search_client.search_with_focus(context, num=self.config.max_search_results)
        except SearchServiceError as e:
            log.warning("orchestrator.stream.search_failed", error=e.message, status=e.status)
            yield ErrorEvent(data={"code": e.code, "error": e.message})
            return

        result_set = AggregatedResultSet(items=readable_items(self.aggregator.aggregate([response]).items))
        sources = to_sources(result_set)
        yield SourcesEvent(data={"sources": [source.model_dump() for source in sources]})

        contents = extract_contents(result_set.items)
        if not contents:
            error = NoResultsError(context.query)
            yield ErrorEvent(data={"code": error.code, "error": error.message})
            return

        yield AnswerStartEvent(data={"status": "generating"})
        parts: list[str] = []
        try:
            async for chunk in self.synthesizer.stream(context, contents):
                parts.append(chunk)
                yield AnswerChunkEvent(data={"text": chunk})
        except SearchOrchestrationError as e:
            yield ErrorEvent(data={"code": e.code, "error": e.message})
            return

        if not "".join(parts).strip():
            yield ErrorEvent(data={"code": "NO_CONTENT", "error": "No content generated"})
            return

        elapsed_ms = int((perf_counter() - start) * 1000)
        log.info("orchestrator.stream.completed", elapsed_ms=elapsed_ms, source_count=len(sources))
        yield AnswerCompleteEvent(data={"answer": "".join(parts), "elapsed_ms": elapsed_ms})

    # --- Configuration probe ---

    async def validate_configuration(self) -> OperationResult[ConfigurationStatus]:
        """Probe both external services concurrently."""
        try:
            async with asyncio.TaskGroup() as tg:
                generation_task = tg.create_task(self.generation.validate())
                search_task = tg.create_task(self.search_client.validate())
        except Exception as e:
            log.exception("orchestrator.validation.failed", error=str(e))
            return OperationResult.fail("VALIDATION_ERROR", "Configuration validation failed", details=str(e))

        generation_ok = generation_task.result()
        search_ok = search_task.result()
        log.info("orchestrator.validation.completed", generation_ok=generation_ok, search_ok=search_ok)
        return OperationResult.ok(
            ConfigurationStatus(
                generation_ok=generation_ok,
                search_ok=search_ok,
                overall=generation_ok and search_ok,
            )
        )
