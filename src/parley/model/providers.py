"""
Concrete model bindings.

We support three back-ends out of the box:

1. **Anthropic** via the official async SDK (requires ``ANTHROPIC_API_KEY``).
2. **OpenAI** via the official async SDK (requires ``OPENAI_API_KEY``).
3. **Ollama** for self-hosted models, over its REST API with httpx.
"""

import logging
from typing import (
    Any,
    Dict,
    List,
)

import httpx

from parley.config import settings
from parley.core.schema import Message
from parley.model.base import (
    ModelBinding,
    ModelError,
    register_model,
)

logger = logging.getLogger(__name__)


def _chat_messages(system_prompt: str, messages: List[Message]) -> List[Dict[str, str]]:
    """OpenAI/Ollama style message list with the system prompt first."""
    out = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]
    if system_prompt:
        out.insert(0, {"role": "system", "content": system_prompt})
    return out


@register_model("anthropic")
class AnthropicModel(ModelBinding):
    """Anthropic Claude binding."""

    PROVIDER = "anthropic"
    DEFAULT_MODEL = "claude-3-7-sonnet-20250219"

    def __init__(
        self, model: str, api_key: str | None = None, client: Any = None, **kwargs: Any
    ) -> None:
        super().__init__(model, **kwargs)
        self._api_key = api_key or settings.ANTHROPIC_API_KEY
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            import anthropic  # pylint: disable=import-outside-toplevel

            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key, timeout=settings.MODEL_TIMEOUT
            )
        return self._client

    async def _generate(self, messages: List[Message]) -> str:
        client = self._get_client()
        request: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [
                {"role": m.role, "content": m.content} for m in messages if m.role != "system"
            ],
        }
        if self.system_prompt:
            request["system"] = self.system_prompt

        try:
            response = await client.messages.create(**request)
        except Exception as exc:  # pylint: disable=broad-except
            raise ModelError(f"Claude API error: {exc}") from exc

        # Handle different content block types from Anthropic API
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )


@register_model("openai")
class OpenAIModel(ModelBinding):
    """OpenAI chat completions binding."""

    PROVIDER = "openai"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self, model: str, api_key: str | None = None, client: Any = None, **kwargs: Any
    ) -> None:
        super().__init__(model, **kwargs)
        self._api_key = api_key or settings.OPENAI_API_KEY
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            import openai  # pylint: disable=import-outside-toplevel

            self._client = openai.AsyncOpenAI(api_key=self._api_key, timeout=settings.MODEL_TIMEOUT)
        return self._client

    async def _generate(self, messages: List[Message]) -> str:
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=_chat_messages(self.system_prompt, messages),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:  # pylint: disable=broad-except
            raise ModelError(f"OpenAI API error: {exc}") from exc

        content = resp.choices[0].message.content
        if content is None:
            logger.warning("OpenAI returned an empty response")
            return ""
        return content


@register_model("ollama")
class OllamaModel(ModelBinding):
    """Ollama binding using ``POST /api/chat`` with streaming disabled."""

    PROVIDER = "ollama"
    DEFAULT_MODEL = "llama3.1:latest"

    def __init__(
        self,
        model: str,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(model, **kwargs)
        self.base_url = (base_url or settings.OLLAMA_URL).rstrip("/")
        self._client = client

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}/api/chat"
        if self._client is not None:
            return await self._client.post(url, json=payload)
        async with httpx.AsyncClient(timeout=settings.MODEL_TIMEOUT) as client:
            return await client.post(url, json=payload)

    async def _generate(self, messages: List[Message]) -> str:
        payload = {
            "model": self.model,
            "messages": _chat_messages(self.system_prompt, messages),
            "stream": False,
            "options": {"temperature": self.temperature, "num_predict": self.max_tokens},
        }
        try:
            resp = await self._post(payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ModelError(
                f"Ollama API error ({exc.response.status_code}): {exc.response.text}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ModelError(f"Ollama API error: {exc}") from exc

        try:
            return str(data["message"]["content"])
        except (KeyError, TypeError) as exc:
            raise ModelError(f"Unexpected Ollama response: {data!r}") from exc
