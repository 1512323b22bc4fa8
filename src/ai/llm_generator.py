"""
Move generator backed by a language model behind an OpenAI-compatible chat completions endpoint.

The rest of the code should not care which SDK is in use. This module sends `model` + `messages` and returns the move text.
Retries and timeouts belong to the orchestrator: the client is created with `max_retries=0` and no timeout of its own.
"""

import logging
from typing import Any, Optional, Sequence

import openai
from openai import AsyncOpenAI

from src.ai.prompts import build_messages, extract_move_text
from src.ai.service import (
    AIMoveRequest,
    ServiceErrorKind,
    ServiceHealth,
    ServiceStatus,
)
from src.core.config import SETTINGS, Settings
from src.core.exceptions import ServiceUnavailableError

log = logging.getLogger(__name__)

HEALTH_CHECK_PROMPT = "Test connection. Respond with 'OK'"


def classify_api_error(error: openai.APIError) -> ServiceUnavailableError:
    """
    Sort SDK errors into retryable and non-retryable failures.

    Quota / rate limit and authentication problems will not be solved by asking again: the orchestrator goes to its
    fallback immediately. Network trouble and server errors are worth another attempt.
    """
    match error:
        case openai.RateLimitError():
            return ServiceUnavailableError(
                f"AI service quota exceeded: {error}",
                retryable=False,
                kind=ServiceErrorKind.QUOTA_EXCEEDED,
            )
        case openai.AuthenticationError() | openai.PermissionDeniedError():
            return ServiceUnavailableError(
                f"AI service refused the credentials: {error}",
                retryable=False,
                kind=ServiceErrorKind.AUTHENTICATION,
            )
        case openai.APIConnectionError():
            # APITimeoutError is a subclass: also a network problem
            return ServiceUnavailableError(
                f"Network connection issue: {error}", kind=ServiceErrorKind.NETWORK
            )
        case openai.InternalServerError():
            return ServiceUnavailableError(
                f"AI service temporarily unavailable: {error}",
                kind=ServiceErrorKind.UNAVAILABLE,
            )
        case _:
            return ServiceUnavailableError(
                f"AI service error: {error}", kind=ServiceErrorKind.UNKNOWN
            )


def extract_text(response: Any) -> str:
    """Text content of the first choice of a chat completion ('' if there is none)."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    content = getattr(choices[0].message, "content", None)
    return content if isinstance(content, str) else ""


class LLMMoveGenerator:
    """
    Ask a chat model for a move. Models are tried in order within one call;
    the first non-empty answer is returned (it may still be illegal, that is for the orchestrator to find out).
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        models: Optional[Sequence[str]] = None,
        settings: Settings = SETTINGS,
    ) -> None:
        self.client = client or AsyncOpenAI(
            api_key=settings.ai_api_key or None,
            base_url=settings.ai_base_url or None,
            max_retries=0,
        )
        self.models = tuple(models or settings.ai_models)
        if not self.models:
            raise ValueError("At least one model is required to generate moves.")

    async def generate_move(self, request: AIMoveRequest) -> str:
        messages = build_messages(request)
        last_error: Optional[ServiceUnavailableError] = None
        for model in self.models:
            try:
                response = await self.client.chat.completions.create(
                    model=model, messages=messages
                )
            except openai.APIError as e:
                error = classify_api_error(e)
                if not error.retryable:
                    # e.g. quota exceeded: trying other models on the same account will not help
                    raise error from e
                log.warning("Model %s failed: %s", model, e)
                last_error = error
                continue

            move_text = extract_move_text(extract_text(response))
            if move_text:
                log.debug("Model %s proposed %r for %s", model, move_text, request.fen)
                return move_text

            last_error = ServiceUnavailableError(
                f"Model {model} returned an empty response",
                kind=ServiceErrorKind.INVALID_RESPONSE,
            )
            log.warning("Model %s returned an empty response", model)

        assert last_error is not None
        raise last_error

    async def check_health(self) -> ServiceHealth:
        """Ask the first model for a one word answer. Failures are reported, not raised."""
        try:
            response = await self.client.chat.completions.create(
                model=self.models[0],
                messages=[{"role": "user", "content": HEALTH_CHECK_PROMPT}],
            )
        except openai.APIError as e:
            error = classify_api_error(e)
            log.warning("AI service health check failed (%s): %s", error.kind, e)
            return ServiceHealth(ServiceStatus.UNAVAILABLE, str(error), can_retry=error.retryable)

        if extract_text(response).strip():
            return ServiceHealth(
                ServiceStatus.AVAILABLE, "AI service is working normally", can_retry=True
            )
        return ServiceHealth(
            ServiceStatus.DEGRADED,
            "AI service is responding but may have issues",
            can_retry=True,
        )
