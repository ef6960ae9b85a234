"""LiteLLM wrapper for structured-output generation calls.

LiteLLM provides a unified interface for 100+ LLM providers; every agent
goes through generate_json() so the provider can be swapped with config.

This module:
- Wraps litellm.acompletion() with a JSON-schema response format
- Enforces a hard wall-clock timeout per call
- Normalizes errors to our domain exceptions
- Logs token usage for billing/monitoring

There is deliberately no retry here: one generation call is one job
attempt, and re-running a stage is an explicit new job.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any

import litellm
import structlog

from flow_pipeline.config import Settings, get_settings

log = structlog.get_logger(__name__)


class LLMError(Exception):
    """Base exception for all LLM call failures."""


class GenerationTimeoutError(LLMError):
    """The backend did not answer within the agent timeout."""


class MalformedOutputError(LLMError):
    """The backend answered, but not with JSON of the expected shape."""


class LLMRateLimitError(LLMError):
    """Upstream LLM rate limit or quota exceeded."""


class LLMUnavailableError(LLMError):
    """LLM service is unavailable."""


@dataclass
class GenerationResult:
    """Parsed JSON output plus usage counters from one backend call."""

    data: Any
    tokens_in: int
    tokens_out: int
    model: str


class LLMClient:
    """Thin wrapper around LiteLLM with timeouts and structured logging."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def default_model(self) -> str:
        return self._settings.litellm_default_model

    async def generate_json(
        self,
        *,
        system_instruction: str,
        prompt: str,
        schema_name: str,
        json_schema: dict[str, Any],
        timeout: float,
        temperature: float = 0.2,
        enable_search: bool = False,
        model: str | None = None,
    ) -> GenerationResult:
        """Run one generation call and parse its JSON answer.

        Args:
            system_instruction: Fixed agent instruction
            prompt: User prompt carrying the input payload
            schema_name: Name of the response schema (for the provider)
            json_schema: JSON schema the answer must conform to
            timeout: Hard wall-clock limit in seconds
            temperature: Sampling temperature
            enable_search: Attach Google Search grounding (Gemini only)
            model: Model identifier. Falls back to LITELLM_DEFAULT_MODEL.

        Returns:
            GenerationResult with the parsed JSON and token counts

        Raises:
            GenerationTimeoutError: No answer within ``timeout``
            MalformedOutputError: Answer is empty or not valid JSON
            LLMRateLimitError: Upstream rate limit / quota
            LLMUnavailableError: Service unavailable
            LLMError: Any other backend failure
        """
        effective_model = model or self.default_model
        kwargs: dict[str, Any] = {
            "api_key": self._settings.litellm_api_key.get_secret_value(),
            "timeout": timeout,
        }
        if self._settings.litellm_base_url:
            kwargs["api_base"] = self._settings.litellm_base_url
        if enable_search:
            kwargs["tools"] = [{"googleSearch": {}}]

        log.debug(
            "llm.generation_request",
            model=effective_model,
            schema=schema_name,
            prompt_chars=len(prompt),
            timeout=timeout,
        )

        started = time.monotonic()
        try:
            async with asyncio.timeout(timeout):
                response = await litellm.acompletion(
                    model=effective_model,
                    messages=[
                        {"role": "system", "content": system_instruction},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=temperature,
                    response_format={
                        "type": "json_schema",
                        "json_schema": {"name": schema_name, "schema": json_schema},
                    },
                    **kwargs,
                )
        except TimeoutError as exc:
            raise GenerationTimeoutError(
                f"Generation timed out after {timeout:.0f}s ({schema_name})"
            ) from exc
        except litellm.exceptions.Timeout as exc:
            raise GenerationTimeoutError(f"Generation timed out upstream: {exc}") from exc
        except litellm.exceptions.RateLimitError as exc:
            raise LLMRateLimitError(f"Rate limit from upstream LLM: {exc}") from exc
        except litellm.exceptions.ServiceUnavailableError as exc:
            raise LLMUnavailableError(f"LLM service unavailable: {exc}") from exc
        except Exception as exc:
            raise LLMError(f"LLM generation failed: {exc}") from exc

        text = self.extract_text(response)
        if not text.strip():
            raise MalformedOutputError(f"Empty response from model ({schema_name})")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedOutputError(f"Failed to parse JSON response: {exc}") from exc

        usage = getattr(response, "usage", None)
        tokens_in = getattr(usage, "prompt_tokens", 0) or 0
        tokens_out = getattr(usage, "completion_tokens", 0) or 0
        log.info(
            "llm.generation_done",
            model=effective_model,
            schema=schema_name,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return GenerationResult(
            data=data,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            model=self.extract_model_name(response),
        )

    def extract_text(self, response: Any) -> str:
        """Extract the assistant text content from a completion response."""
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, KeyError):
            return ""

    def extract_model_name(self, response: Any) -> str:
        """Extract the model name actually used from the response."""
        try:
            return response.model or self.default_model
        except AttributeError:
            return self.default_model
