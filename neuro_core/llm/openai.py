"""OpenAI text-generation backend."""

from typing import Optional

import openai
import structlog
from openai import AsyncOpenAI

from neuro_core.core.errors import (
    AuthenticationError,
    AuthorizationError,
    CompanionError,
    ConnectivityError,
    RateLimitOrQuotaError,
    RequestTimeoutError,
    UpstreamServiceError,
    ValidationError,
)
from neuro_core.llm.base import TextGeneration, TextGenerationBackend

logger = structlog.get_logger(__name__)

PROVIDER = "openai"


class OpenAITextBackend(TextGenerationBackend):
    """Chat-completions backend using the official SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model = model
        # SDK retries are disabled; fallback handles failures.
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.logger = logger.bind(adapter=PROVIDER)

    @property
    def name(self) -> str:
        return PROVIDER

    async def generate(
        self,
        system_prompt: str,
        user_text: str,
        max_tokens: int,
        temperature: float,
    ) -> TextGeneration:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APIError as e:
            raise self._map_error(e) from e

        if not response.choices:
            raise UpstreamServiceError("OpenAI returned no choices", provider=PROVIDER)

        text = (response.choices[0].message.content or "").strip()
        usage = response.usage

        self.logger.debug(
            "openai_completion",
            model=self.model,
            tokens=usage.total_tokens if usage else 0,
            response_length=len(text),
        )

        return TextGeneration(
            text=text,
            total_tokens=usage.total_tokens if usage else 0,
            model=response.model or self.model,
        )

    @staticmethod
    def _map_error(e: "openai.APIError") -> CompanionError:
        # APITimeoutError subclasses APIConnectionError
        if isinstance(e, openai.APITimeoutError):
            return RequestTimeoutError("OpenAI request timed out", provider=PROVIDER)
        if isinstance(e, openai.APIConnectionError):
            return ConnectivityError(f"Could not reach OpenAI: {e}", provider=PROVIDER)
        if isinstance(e, openai.AuthenticationError):
            return AuthenticationError("OpenAI rejected the API key", provider=PROVIDER)
        if isinstance(e, openai.PermissionDeniedError):
            return AuthorizationError("OpenAI denied access", provider=PROVIDER)
        if isinstance(e, openai.RateLimitError):
            return RateLimitOrQuotaError("OpenAI rate limit exceeded", provider=PROVIDER)
        if isinstance(e, openai.BadRequestError):
            return ValidationError(f"OpenAI rejected the request: {e.message}", provider=PROVIDER)
        status = getattr(e, "status_code", None)
        return UpstreamServiceError(
            f"OpenAI API error: {e.message}", status_code=status, provider=PROVIDER
        )

    async def close(self) -> None:
        await self.client.close()
