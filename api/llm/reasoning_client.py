"""
Reasoning backend client.

Thin async wrapper over an OpenAI-compatible chat completions endpoint. Two
call shapes are supported: strict JSON-schema structured output (used by the
merit analyzer) and plain JSON-object output (used by the agent stages). Both
return parsed dicts; callers validate them against their own schemas.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
import structlog
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from api.errors import ReasoningBackendError, StageOutputError
from libs.common.settings import Settings

logger = structlog.get_logger(__name__)

MAX_COMPLETION_TOKENS = 4000

RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_BARE_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class TokenUsage:
    """Running token totals for one client."""
    input_tokens: int = 0
    output_tokens: int = 0
    calls: int = 0

    def add(self, input_tokens: int, output_tokens: int) -> None:
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.calls += 1

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


def extract_json_block(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model text.

    Accepts a bare JSON document, a fenced ```json block, or the outermost
    ``{...}`` span embedded in prose.

    Raises:
        StageOutputError: If no JSON object can be recovered.
    """
    candidates = [text]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    bare = _BARE_OBJECT.search(text)
    if bare:
        candidates.append(bare.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise StageOutputError("Reasoning response did not contain a JSON object")


class ReasoningClient:
    """Async client for the generative reasoning backend."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.3,
        timeout: float = 45.0,
        max_attempts: int = 3,
        client: Optional[AsyncOpenAI] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_attempts = max_attempts
        # Retries are handled here, not by the SDK
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=8)
        self.token_usage = TokenUsage()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReasoningClient":
        return cls(
            api_key=settings.reasoning_api_key or "",
            model=settings.reasoning_model,
            base_url=settings.reasoning_base_url,
            temperature=settings.reasoning_temperature,
            timeout=settings.reasoning_timeout_seconds,
            max_attempts=settings.reasoning_max_attempts,
        )

    async def _create(self, messages: List[Dict[str, str]], response_format: Dict[str, Any]) -> str:
        start_time = time.time()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self._retry_wait,
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.chat.completions.create(
                        model=self.model,
                        messages=messages,
                        temperature=self.temperature,
                        max_completion_tokens=MAX_COMPLETION_TOKENS,
                        response_format=response_format,
                    )
        except openai.OpenAIError as e:
            logger.error("Reasoning backend call failed", model=self.model, error=str(e), error_type=type(e).__name__)
            raise ReasoningBackendError(f"Reasoning backend call failed: {type(e).__name__}") from e

        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0
        self.token_usage.add(input_tokens, output_tokens)

        content = response.choices[0].message.content if response.choices else None
        logger.info(
            "Reasoning backend call completed",
            model=self.model,
            response_format=response_format.get("type"),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            elapsed_ms=int((time.time() - start_time) * 1000),
        )
        if not content:
            raise StageOutputError("Reasoning backend returned an empty response")
        return content

    async def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        json_schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Run a completion constrained to ``json_schema`` and return the parsed object."""
        content = await self._create(
            [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
            {"type": "json_schema", "json_schema": {"name": schema_name, "strict": True, "schema": json_schema}},
        )
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise StageOutputError("Structured response was not valid JSON") from e
        if not isinstance(parsed, dict):
            raise StageOutputError("Structured response was not a JSON object")
        return parsed

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        """Run a JSON-object completion, recovering an embedded JSON block if needed."""
        content = await self._create(
            [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
            {"type": "json_object"},
        )
        try:
            parsed = json.loads(content)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        logger.warning("Reasoning response was not pure JSON, extracting embedded block", model=self.model)
        return extract_json_block(content)

    def get_total_tokens(self) -> int:
        return self.token_usage.total
