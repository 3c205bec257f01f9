"""LLM provider abstraction layer.

Supports multiple backends:
  - Ollama (local)
  - OpenAI (GPT-4o, GPT-4o Mini, etc.)
  - Anthropic (Claude Sonnet 4.5, Claude Haiku 4.5, etc.)
  - Google Gemini (Gemini 2.0 Flash, default)

Every provider exposes the same non-streaming ``complete`` call so the
entity classifier doesn't need to know which backend is active. The raw
document text is only ever sent to the configured provider for
classification; nothing is stored by this layer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    provider_name: str = "base"

    def __init__(
        self,
        model: str,
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._model = model
        self.temperature = temperature
        self.timeout = timeout

    @property
    def model_name(self) -> str:
        """Return the current model identifier."""
        return self._model

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        json_output: bool = False,
    ) -> str:
        """Non-streaming completion — returns the full response text.

        When *json_output* is set the provider is asked for a JSON object.
        """
        ...

    @staticmethod
    def _split_system(
        messages: list[dict[str, str]],
    ) -> tuple[str, list[dict[str, str]]]:
        """Separate system prompt from the remaining messages."""
        system = ""
        others = []
        for msg in messages:
            if msg["role"] == "system":
                system += msg["content"] + "\n"
            else:
                others.append({"role": msg["role"], "content": msg["content"]})
        return system.strip(), others


# ---------------------------------------------------------------------------
# Ollama (local)
# ---------------------------------------------------------------------------

class OllamaProvider(LLMProvider):
    """Ollama running locally — no data leaves the machine."""

    provider_name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3",
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(model, temperature, timeout)
        self.base_url = base_url.rstrip("/")

    async def complete(
        self,
        messages: list[dict[str, str]],
        json_output: bool = False,
    ) -> str:
        payload: dict = {
            "model": self._model,
            "messages": messages,
            "stream": False,
        }
        if json_output:
            payload["format"] = "json"
        if self.temperature is not None:
            payload["options"] = {"temperature": self.temperature}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/api/chat",
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
            return data.get("message", {}).get("content", "")


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

class OpenAIProvider(LLMProvider):
    """OpenAI API provider (GPT-4o, etc.)."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(model, temperature, timeout)
        self._api_key = api_key

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        messages: list[dict[str, str]],
        json_output: bool = False,
    ) -> str:
        payload: dict = {
            "model": self._model,
            "messages": messages,
            "stream": False,
        }
        if json_output:
            payload["response_format"] = {"type": "json_object"}
        if self.temperature is not None:
            payload["temperature"] = self.temperature

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                "https://api.openai.com/v1/chat/completions",
                headers=self._headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
            return data["choices"][0]["message"]["content"]


# ---------------------------------------------------------------------------
# Anthropic (Claude)
# ---------------------------------------------------------------------------

class AnthropicProvider(LLMProvider):
    """Anthropic API provider (Claude Sonnet 4.5, Claude Haiku, etc.)."""

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(model, temperature, timeout)
        self._api_key = api_key

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

    async def complete(
        self,
        messages: list[dict[str, str]],
        json_output: bool = False,
    ) -> str:
        # Anthropic has no JSON mode; the prompt asks for JSON instead.
        system, user_messages = self._split_system(messages)
        payload: dict = {
            "model": self._model,
            "max_tokens": 8192,
            "messages": user_messages,
            "stream": False,
        }
        if system:
            payload["system"] = system
        if self.temperature is not None:
            payload["temperature"] = self.temperature

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                "https://api.anthropic.com/v1/messages",
                headers=self._headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
            for block in data.get("content", []):
                if block.get("type") == "text":
                    return block["text"]
            return ""


# ---------------------------------------------------------------------------
# Google Gemini
# ---------------------------------------------------------------------------

class GeminiProvider(LLMProvider):
    """Google Generative Language API provider (Gemini models)."""

    provider_name = "gemini"

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(model, temperature, timeout)
        self._api_key = api_key

    def _headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        messages: list[dict[str, str]],
        json_output: bool = False,
    ) -> str:
        system, others = self._split_system(messages)
        payload: dict = {
            "contents": [
                {
                    "role": "model" if m["role"] == "assistant" else "user",
                    "parts": [{"text": m["content"]}],
                }
                for m in others
            ],
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        generation_config: dict = {}
        if json_output:
            generation_config["responseMimeType"] = "application/json"
        if self.temperature is not None:
            generation_config["temperature"] = self.temperature
        if generation_config:
            payload["generationConfig"] = generation_config

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.BASE_URL}/models/{self._model}:generateContent",
                headers=self._headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
            candidates = data.get("candidates", [])
            if not candidates:
                return ""
            parts = candidates[0].get("content", {}).get("parts", [])
            return "".join(p.get("text", "") for p in parts)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_provider(
    provider: str,
    model: str | None = None,
    *,
    temperature: float | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    ollama_base_url: str = "http://localhost:11434",
    ollama_model: str = "llama3",
    openai_api_key: str = "",
    openai_model: str = "gpt-4o",
    anthropic_api_key: str = "",
    anthropic_model: str = "claude-sonnet-4-5-20250929",
    gemini_api_key: str = "",
    gemini_model: str = "gemini-2.0-flash",
) -> LLMProvider:
    """Create an LLM provider instance.

    Parameters
    ----------
    provider : str
        One of "ollama", "openai", "anthropic", "gemini".
    model : str | None
        Override model ID. If None, uses the default for the provider.
    """
    common = {"temperature": temperature, "timeout": timeout}
    if provider == "ollama":
        return OllamaProvider(
            base_url=ollama_base_url,
            model=model or ollama_model,
            **common,
        )
    elif provider == "openai":
        if not openai_api_key:
            raise ValueError("OpenAI API key is required")
        return OpenAIProvider(
            api_key=openai_api_key,
            model=model or openai_model,
            **common,
        )
    elif provider == "anthropic":
        if not anthropic_api_key:
            raise ValueError("Anthropic API key is required")
        return AnthropicProvider(
            api_key=anthropic_api_key,
            model=model or anthropic_model,
            **common,
        )
    elif provider == "gemini":
        if not gemini_api_key:
            raise ValueError("Gemini API key is required")
        return GeminiProvider(
            api_key=gemini_api_key,
            model=model or gemini_model,
            **common,
        )
    else:
        raise ValueError(f"Unknown provider: {provider}")
