"""Text generation providers: hosted chat completions and a local Ollama server."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from docrag.errors import ProviderError
from docrag.providers.http import DEFAULT_TIMEOUT, JSONClient

DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_CHAT_URL = "https://api.openai.com/v1"
DEFAULT_OLLAMA_MODEL = "llama3.1"
DEFAULT_OLLAMA_URL = "http://localhost:11434"

logger = logging.getLogger(__name__)


class Generator(ABC):
    """Turns a prompt into generated text."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Return the model's answer to ``prompt``."""

    def close(self) -> None:
        """Release provider resources."""


class HostedChatClient(Generator):
    """Client for an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_CHAT_URL,
        model: str = DEFAULT_CHAT_MODEL,
        api_key: str | None = None,
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._http = JSONClient(base_url, api_key=api_key, timeout=timeout, transport=transport)

    def generate(self, prompt: str) -> str:
        payload: dict = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature

        logger.info("Chat request to %s (prompt_length=%d)", self.model, len(prompt))
        data = self._http.post("/chat/completions", payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("Chat response has no choices[0].message.content field") from exc
        if not isinstance(content, str):
            raise ProviderError("Chat response content is not text")
        return content

    def close(self) -> None:
        self._http.close()


class OllamaClient(Generator):
    """Client for a local Ollama server's ``/api/generate`` endpoint."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_OLLAMA_URL,
        model: str = DEFAULT_OLLAMA_MODEL,
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._http = JSONClient(base_url, timeout=timeout, transport=transport)

    def generate(self, prompt: str) -> str:
        payload: dict = {"model": self.model, "prompt": prompt, "stream": False}
        if self.temperature is not None:
            payload["options"] = {"temperature": self.temperature}

        logger.info("Ollama generate request to %s (prompt_length=%d)", self.model, len(prompt))
        data = self._http.post("/api/generate", payload)
        content = data.get("response")
        if not isinstance(content, str):
            raise ProviderError("Ollama response has no 'response' text field")
        return content

    def close(self) -> None:
        self._http.close()
