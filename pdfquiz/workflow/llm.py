from __future__ import annotations

import json
from typing import Any, List, Optional

from openai import AsyncOpenAI

from pdfquiz.errors import GenerationError
from pdfquiz.utils.logging_config import get_logger

logger = get_logger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class ChatProvider:
    """Wraps an OpenAI-compatible chat completion endpoint.

    Any OpenAI-compatible service (OpenAI itself, Groq) is reachable by passing
    its ``base_url``. Construction requires a key; callers decide whether a
    provider exists at all based on configuration.
    """

    def __init__(
        self,
        name: str,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        base_url: Optional[str] = None,
        temperature: float = 0.5,
        max_tokens: int = 6000,
        client: Any = None,
    ) -> None:
        if not api_key and client is None:
            raise ValueError(f"Provider {name} requires an API key.")
        self.name = name
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def complete(self, system: str, user: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except Exception as exc:
            raise GenerationError(f"{self.name} request failed: {exc}") from exc

        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError):
            logger.warning("Provider returned no choices | provider=%s", self.name)
            return ""


def openai_provider(api_key: str, model: str = "gpt-4o-mini") -> ChatProvider:
    return ChatProvider("openai", api_key, model)


def groq_provider(api_key: str, model: str = "llama-3.3-70b-versatile") -> ChatProvider:
    return ChatProvider("groq", api_key, model, base_url=GROQ_BASE_URL)


def extract_json_array(content: str) -> Optional[List[Any]]:
    """Parse the substring between the first ``[`` and the last ``]``.

    Tolerates prose around the array. Returns None when there is no parseable list.
    """
    if not content:
        return None
    start = content.find("[")
    end = content.rfind("]")
    if start == -1 or end == -1 or end <= start:
        return None
    try:
        data = json.loads(content[start : end + 1])
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON array from provider output (%s chars)", len(content))
        return None
    return data if isinstance(data, list) else None


__all__ = ["ChatProvider", "openai_provider", "groq_provider", "extract_json_array", "GROQ_BASE_URL"]
