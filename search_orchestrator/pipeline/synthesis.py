"""Final answer synthesis with numbered citations."""

from collections.abc import AsyncIterator, Sequence
from time import perf_counter

from search_orchestrator.clients.generation import GenerationClient
from search_orchestrator.exceptions import GenerationError, SynthesisError
from search_orchestrator.logging import get_logger
from search_orchestrator.models import SearchContext
from search_orchestrator.prompts import ANSWER_MAX_TOKENS, build_answer_prompt, temperature_for_focus

log = get_logger("search_orchestrator.pipeline.synthesis")


class AnswerSynthesizer:
    def __init__(self, generation: GenerationClient) -> None:
        self.generation = generation

    async def synthesize(self, context: SearchContext, contents: Sequence[str]) -> str:
        """Generate the cited answer for ``contents``, numbered ``[1]..[n]``.

        Raises:
            GenerationError: With code ``NO_CONTENT`` when the model returns blank text.
            SynthesisError: When the generation call fails.
        """
        start = perf_counter()
        try:
            answer = await self.generation.generate(
                build_answer_prompt(context, contents),
                temperature=temperature_for_focus(context.focus_mode),
                max_tokens=ANSWER_MAX_TOKENS,
            )
        except GenerationError as e:
            log.error("synthesis.failed", error=e.message, status=e.status)
            raise SynthesisError(e.message) from e

        if not answer.strip():
            log.error("synthesis.no_content")
            raise GenerationError("No content generated", code="NO_CONTENT")

        log.info(
            "synthesis.completed",
            duration_ms=int((perf_counter() - start) * 1000),
            answer_length=len(answer),
            source_count=len(contents),
        )
        return answer

    async def stream(self, context: SearchContext, contents: Sequence[str]) -> AsyncIterator[str]:
        """Yield answer text chunks as they are generated.

        Raises:
            SynthesisError: When the stream fails before or during generation.
        """
        try:
            async for chunk in self.generation.stream(
                build_answer_prompt(context, contents),
                temperature=temperature_for_focus(context.focus_mode),
                max_tokens=ANSWER_MAX_TOKENS,
            ):
                yield chunk
        except GenerationError as e:
            log.error("synthesis.stream_failed", error=e.message, status=e.status)
            raise SynthesisError(e.message) from e
