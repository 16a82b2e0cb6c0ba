"""LLM provider abstraction via LiteLLM Router.

Provides an explicitly constructed LLM service with:
- Claude Sonnet 4 as the primary reasoning model
- GPT-4o as a second deployment in the same group; the router moves
  traffic to it once Claude is cooled down, never by retrying a call
- Free-text completion for minutes and summaries
- Schema-validated structured output (instructor) for extraction
- Translation of provider exceptions into pipeline error types

Construct one LLMService at startup and pass it to each stage; there is
no module-level client.
"""

from __future__ import annotations

from typing import TypeVar

import instructor
import litellm
import structlog
from instructor.core import InstructorRetryException
from litellm import Router
from pydantic import BaseModel, ValidationError

from src.meetflow.config import Settings, get_settings
from src.meetflow.meetings.errors import (
    AuthFailure,
    MalformedExtraction,
    PipelineError,
    ProviderNotConfigured,
    ProviderUnavailable,
    RateLimited,
)

logger = structlog.get_logger(__name__)

ResponseModelT = TypeVar("ResponseModelT", bound=BaseModel)


# ── Error Translation ────────────────────────────────────────────────────────


def _last_attempt_error(exc: InstructorRetryException) -> BaseException | None:
    """Return the exception raised by instructor's final attempt, if known."""
    failed_attempts = getattr(exc, "failed_attempts", None)
    if failed_attempts:
        return getattr(failed_attempts[-1], "exception", None)
    if exc.args and isinstance(exc.args[0], BaseException):
        return exc.args[0]
    cause = exc.__cause__
    # tenacity.RetryError keeps the final attempt as a Future
    last_attempt = getattr(cause, "last_attempt", None)
    if last_attempt is not None:
        return last_attempt.exception()
    return cause


def translate_provider_error(exc: BaseException | None) -> PipelineError | None:
    """Map a LiteLLM exception onto the pipeline error taxonomy.

    Returns None for exceptions that are not provider failures, so the
    caller can re-raise them unchanged.
    """
    if isinstance(exc, PipelineError):
        return exc
    if isinstance(exc, litellm.RateLimitError):
        return RateLimited("LLM provider rate limit exceeded. Please try again later.")
    if isinstance(exc, (litellm.AuthenticationError, litellm.PermissionDeniedError)):
        return AuthFailure("LLM provider authentication failed")
    if isinstance(
        exc,
        (
            litellm.Timeout,
            litellm.APIConnectionError,
            litellm.ServiceUnavailableError,
            litellm.InternalServerError,
        ),
    ):
        return ProviderUnavailable(f"LLM provider unavailable: {type(exc).__name__}")
    return None


# ── LLM Service ──────────────────────────────────────────────────────────────


class LLMService:
    """LLM provider abstraction with LiteLLM Router.

    Configures Claude Sonnet 4 as primary reasoning model with GPT-4o as
    fallback deployment. Each call makes a single provider attempt unless
    LLM_MAX_RETRIES says otherwise. If neither API key is set, the router
    is None and every call raises ProviderNotConfigured.

    Args:
        settings: Application settings; defaults to the cached instance.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()

        model_list = []

        # Primary reasoning model: Claude Sonnet 4
        if settings.ANTHROPIC_API_KEY:
            model_list.append({
                "model_name": "reasoning",
                "litellm_params": {
                    "model": "anthropic/claude-sonnet-4-20250514",
                    "api_key": settings.ANTHROPIC_API_KEY,
                },
            })

        # Fallback reasoning model: GPT-4o
        if settings.OPENAI_API_KEY:
            model_list.append({
                "model_name": "reasoning",
                "litellm_params": {
                    "model": "openai/gpt-4o",
                    "api_key": settings.OPENAI_API_KEY,
                },
            })

        if not model_list:
            logger.warning("No LLM API keys configured -- LLM service will be unavailable")
            self.router = None
            return

        self.router = Router(
            model_list=model_list,
            num_retries=settings.LLM_MAX_RETRIES,
            timeout=settings.LLM_TIMEOUT,
            allowed_fails=3,
            cooldown_time=30,
        )

    def _require_router(self) -> Router:
        if not self.router:
            raise ProviderNotConfigured("No LLM API keys configured")
        return self.router

    async def completion(
        self,
        messages: list[dict],
        model: str = "reasoning",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        metadata: dict | None = None,
    ) -> dict:
        """Execute a completion call through the LiteLLM Router.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model group name.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0-2).
            metadata: Additional metadata to include in the call.

        Returns:
            Dict with content, model and usage.

        Raises:
            ProviderNotConfigured: If no LLM API keys are configured.
            RateLimited, AuthFailure, ProviderUnavailable: Provider failures.
        """
        router = self._require_router()

        try:
            response = await router.acompletion(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                metadata=metadata or {},
            )
        except Exception as exc:
            translated = translate_provider_error(exc)
            if translated is None:
                raise
            raise translated from exc

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return {
            "content": response.choices[0].message.content or "",
            "model": response.model,
            "usage": usage,
        }

    async def structured(
        self,
        messages: list[dict],
        response_model: type[ResponseModelT],
        model: str = "reasoning",
        max_tokens: int = 4096,
        temperature: float = 0.1,
    ) -> ResponseModelT:
        """Execute a completion constrained to ``response_model``.

        Uses instructor over the router with a single attempt: a response
        that does not validate is reported as MalformedExtraction instead
        of being re-asked.

        Raises:
            MalformedExtraction: Output could not be parsed or validated.
            ProviderNotConfigured, RateLimited, AuthFailure,
            ProviderUnavailable: Provider failures.
        """
        router = self._require_router()
        client = instructor.from_litellm(router.acompletion)

        try:
            return await client.chat.completions.create(
                model=model,
                response_model=response_model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                max_retries=1,
            )
        except InstructorRetryException as exc:
            # instructor wraps provider errors as well as validation failures
            translated = translate_provider_error(_last_attempt_error(exc))
            if translated is not None:
                raise translated from exc
            raise MalformedExtraction(
                f"Could not parse {response_model.__name__} from model output"
            ) from exc
        except ValidationError as exc:
            raise MalformedExtraction(
                f"Could not parse {response_model.__name__} from model output"
            ) from exc
        except Exception as exc:
            translated = translate_provider_error(exc)
            if translated is None:
                raise
            raise translated from exc
