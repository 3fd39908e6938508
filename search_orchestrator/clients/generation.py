"""Generation service client backed by a pydantic-ai text agent."""

from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Any

from google.genai.types import HarmBlockThreshold, HarmCategory
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.models.google import GoogleModel, GoogleModelSettings
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.settings import ModelSettings

from search_orchestrator.config import DEFAULT_GENERATION_MODEL
from search_orchestrator.exceptions import GenerationError
from search_orchestrator.logging import get_logger

log = get_logger("search_orchestrator.clients.generation")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 8192
VALIDATION_PROMPT = "Test"
VALIDATION_MAX_TOKENS = 10

SAFETY_SETTINGS = GoogleModelSettings(
    google_safety_settings=[
        {"category": category, "threshold": HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE}
        for category in (
            HarmCategory.HARM_CATEGORY_HARASSMENT,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        )
    ],
)


def create_generation_model(api_key: str, model_name: str = DEFAULT_GENERATION_MODEL) -> GoogleModel:
    """Gemini model bound to an explicit API key."""
    return GoogleModel(model_name, provider=GoogleProvider(api_key=api_key))


def create_generation_agent(model: Any) -> Agent[None, str]:
    """Uncached factory - use with FunctionModel/TestModel for tests."""
    return Agent(
        model,
        output_type=str,
        model_settings=SAFETY_SETTINGS,
        instrument=True,
        name="generation_agent",
    )


@lru_cache(maxsize=4)
def get_generation_agent(api_key: str, model_name: str = DEFAULT_GENERATION_MODEL) -> Agent[None, str]:
    """Cached getter for production."""
    return create_generation_agent(create_generation_model(api_key, model_name))


def clear_agent_cache() -> None:
    get_generation_agent.cache_clear()


def _to_generation_error(exc: Exception) -> GenerationError:
    if isinstance(exc, ModelHTTPError):
        return GenerationError(exc.message, status=exc.status_code, details=exc.body)
    return GenerationError(str(exc) or type(exc).__name__, details=type(exc).__name__)


class GenerationClient:
    """Prompt-in, text-out wrapper around the generation agent.

    Every failure surfaces as ``GenerationError`` carrying the provider's
    HTTP status when one exists.
    """

    def __init__(self, agent: Agent[None, str]) -> None:
        self.agent = agent

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Bulk call returning the text of one candidate (possibly empty)."""
        settings = ModelSettings(temperature=temperature, max_tokens=max_tokens)
        try:
            result = await self.agent.run(prompt, model_settings=settings)
        except Exception as e:
            error = _to_generation_error(e)
            log.warning("generation.failed", error=error.message, status=error.status)
            raise error from e
        return result.output or ""

    async def stream(
        self,
        prompt: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> AsyncIterator[str]:
        """Yield incremental text chunks until the model completes."""
        settings = ModelSettings(temperature=temperature, max_tokens=max_tokens)
        try:
            async with self.agent.run_stream(prompt, model_settings=settings) as result:
                async for chunk in result.stream_text(delta=True):
                    if chunk:
                        yield chunk
        except GenerationError:
            raise
        except Exception as e:
            error = _to_generation_error(e)
            log.warning("generation.stream_failed", error=error.message, status=error.status)
            raise error from e

    async def validate(self) -> bool:
        """Issue one minimal call; True when the service answers."""
        try:
            await self.generate(VALIDATION_PROMPT, max_tokens=VALIDATION_MAX_TOKENS)
        except GenerationError as e:
            log.warning("generation.validation_failed", error=e.message, status=e.status)
            return False
        return True
