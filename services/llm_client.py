# services/llm_client.py
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from openai import AsyncOpenAI

from request_context import get_request_id

log = logging.getLogger("llm")

SYSTEM_PROMPT = (
    "You are an expert global travel planner. "
    "You answer with a single JSON array and nothing else: no markdown, no prose."
)

class TextBackend(Protocol):
    async def generate_text(self, prompt: str) -> str: ...

class OpenAITextBackend:
    """Generate content from a prompt with OpenAI chat completions."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        timeout_s: float = 60.0,
        temperature: float = 0.3,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout_s)

    async def generate_text(self, prompt: str) -> str:
        chat = await self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
        content = chat.choices[0].message.content or ""
        log.info("LLM call ok", extra={"request_id": get_request_id(), "model": self.model, "chars": len(content)})
        return content
