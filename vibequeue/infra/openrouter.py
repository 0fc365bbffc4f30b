from typing import Any, Literal

import httpx
from pydantic import BaseModel

from vibequeue.config.settings import Settings


class OpenRouterError(Exception):
    """Raised when a chat completion cannot be produced."""

    pass


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class OpenRouterClient:
    """Async client for the OpenRouter chat completion API."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(
            base_url=settings.openrouter_base_url.rstrip("/"),
            timeout=settings.openrouter_timeout_s,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 16384,
    ) -> str:
        """Return the text content of the first choice."""
        api_key = self.settings.openrouter_api_key
        if not api_key:
            raise OpenRouterError("OPENROUTER_API_KEY is not configured")

        model = model or self.settings.vibes_generator_openrouter_model
        if not model:
            raise OpenRouterError(
                "No OpenRouter model configured. Set VIBES_GENERATOR_OPENROUTER_MODEL "
                "or pass a model explicitly."
            )

        response = await self.client.post(
            "/chat/completions",
            headers={
                "Authorization": f"Bearer {api_key}",
                "HTTP-Referer": "https://vibeyvibe.app",
                "X-Title": "vibeyvibe",
            },
            json={
                "model": model,
                "messages": [message.model_dump() for message in messages],
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )

        if response.status_code >= 400:
            raise OpenRouterError(
                f"OpenRouter API error ({response.status_code}): {response.text}"
            )

        data: dict[str, Any] = response.json()
        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not content:
            raise OpenRouterError("No content in OpenRouter response")

        return content
