"""LLM client used for optional venue description enhancement.

OpenAI is tried first, Anthropic second. Both are optional: with no API key
configured the client reports itself unavailable and callers skip the step.
"""

import json
import logging
import re

import anthropic
from openai import AsyncOpenAI

from venuescout.config import settings

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class LLMClient:
    """Async completion client with OpenAI primary + Anthropic fallback."""

    def __init__(
        self,
        openai_api_key: str = settings.openai_api_key,
        anthropic_api_key: str = settings.anthropic_api_key,
    ):
        self._openai = AsyncOpenAI(api_key=openai_api_key) if openai_api_key else None
        self._anthropic = anthropic.AsyncAnthropic(api_key=anthropic_api_key) if anthropic_api_key else None

    @property
    def available(self) -> bool:
        return self._openai is not None or self._anthropic is not None

    async def complete(self, system: str, user: str, *, max_tokens: int = 1500, temperature: float = 0) -> str:
        """Return raw completion text. Raises RuntimeError if every provider fails."""
        errors = []
        messages = [{"role": "user", "content": user}]

        if self._openai:
            try:
                response = await self._openai.chat.completions.create(
                    model=settings.openai_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    messages=[{"role": "system", "content": system}] + messages,
                    response_format={"type": "json_object"},
                )
                return response.choices[0].message.content.strip()
            except Exception as e:
                errors.append(f"OpenAI: {e}")
                logger.warning(f"OpenAI failed, trying Anthropic: {e}")

        if self._anthropic:
            try:
                response = await self._anthropic.messages.create(
                    model=settings.anthropic_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system,
                    messages=messages,
                )
                return response.content[0].text.strip()
            except Exception as e:
                errors.append(f"Anthropic: {e}")
                logger.warning(f"Anthropic also failed: {e}")

        if not errors:
            errors.append("no provider configured")
        raise RuntimeError(f"All LLM providers failed: {'; '.join(errors)}")

    async def complete_json(self, system: str, user: str, **kwargs) -> dict | list:
        """Completion parsed as JSON. Tolerates fenced code blocks."""
        text = await self.complete(system, user, **kwargs)
        fenced = _JSON_BLOCK.search(text)
        if fenced:
            text = fenced.group(1)
        return json.loads(text)


# Singleton
llm_client = LLMClient()
