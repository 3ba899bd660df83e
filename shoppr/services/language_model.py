"""Thin async wrapper over the OpenAI chat API plus JSON extraction helpers"""

import asyncio
import json
import logging
from functools import lru_cache
from typing import Any

import openai
from openai import AsyncOpenAI

from shoppr.core.config import settings
from shoppr.core.errors import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)


class LanguageModelClient:
    """
    Issues single-prompt completions with a hard timeout.

    Every failure mode (missing credential, timeout, non-2xx, empty reply) is
    raised as ``UpstreamError`` / ``UpstreamTimeout`` so callers can apply one
    fallback policy.
    """

    def __init__(self, api_key: str | None = None, base_url: str | None = None, client: AsyncOpenAI | None = None):
        if client is not None:
            self.client = client
        elif api_key:
            # Retries would stretch past the caller's timeout budget
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        else:
            self.client = None

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        """
        Run one completion and return the reply text.

        Args:
            prompt: User prompt
            model: Model name
            temperature: Sampling temperature
            max_tokens: Output token cap
            timeout: Hard deadline in seconds for the whole call

        Returns:
            Non-empty reply text
        """
        if self.client is None:
            raise UpstreamError("Language model API key not configured")

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError) as e:
            raise UpstreamTimeout(f"Language model call exceeded {timeout}s") from e
        except openai.OpenAIError as e:
            raise UpstreamError(f"Language model call failed: {e}") from e

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise UpstreamError("No response generated")
        return text


def extract_balanced(text: str, opener: str = "{", closer: str = "}") -> str | None:
    """
    Return the first balanced ``opener ... closer`` span in ``text``.

    Brackets inside JSON string literals are ignored, so prose around the
    payload and braces inside values do not confuse the scan.
    """
    start = text.find(opener)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def parse_json_object(text: str) -> dict[str, Any]:
    span = extract_balanced(text, "{", "}")
    if span is None:
        raise UpstreamError("No JSON found")
    try:
        result = json.loads(span)
    except json.JSONDecodeError as e:
        raise UpstreamError(f"Invalid JSON in response: {e}") from e
    if not isinstance(result, dict):
        raise UpstreamError("Expected a JSON object")
    return result


def parse_json_array(text: str) -> list[Any]:
    span = extract_balanced(text, "[", "]")
    if span is None:
        raise UpstreamError("No ranking array found")
    try:
        result = json.loads(span)
    except json.JSONDecodeError as e:
        raise UpstreamError(f"Invalid JSON in response: {e}") from e
    if not isinstance(result, list):
        raise UpstreamError("Expected a JSON array")
    return result


@lru_cache
def get_language_model_client() -> LanguageModelClient:
    """Get cached language model client instance"""
    return LanguageModelClient(api_key=settings.OPENAI_API_KEY, base_url=settings.OPENAI_BASE_URL)
