"""Chat-completion client for OpenAI-compatible APIs.

Defaults to the hosted OpenAI API; point ``base_url`` at any compatible
server (Ollama, vLLM, LM Studio) to run locally.

Example usage:
    1. Set env vars:
        OPENAI_API_KEY=sk-...
        MEDTUTOR_CHAT_MODEL=gpt-4o-mini
    2. Use the client
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from medtutor.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class LLMClient:
    """Client for chat completions.

    No retries: a failed call is raised as :class:`UpstreamError` and
    reported to the caller.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.3,
        timeout: float = 300.0,
    ):
        """Initialize the LLM client.

        Args:
            api_key: API key. Without one the client is unconfigured and every
                call raises ConfigurationError.
            model: Chat model name.
            base_url: Optional base URL for OpenAI-compatible servers.
            max_tokens: Maximum tokens in a response.
            temperature: Default sampling temperature.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _ensure_client(self) -> OpenAI:
        """Lazily initialize the OpenAI client."""
        if not self.is_configured:
            raise ConfigurationError()
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> Dict[str, str]:
        """Run one chat completion.

        Args:
            messages: Role-tagged messages, in order.
            temperature: Override default temperature.
            max_tokens: Override default max_tokens.
            json_mode: Ask the model for a single JSON object.

        Returns:
            The response message as ``{"role": ..., "content": ...}``.
        """
        client = self._ensure_client()

        request_params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": temperature if temperature is not None else self.temperature,
        }
        if json_mode:
            request_params["response_format"] = {"type": "json_object"}

        try:
            response = client.chat.completions.create(**request_params)
        except Exception as e:
            logger.exception("Chat completion failed (model=%s)", self.model)
            raise UpstreamError() from e

        message = response.choices[0].message
        return {"role": message.role or "assistant", "content": message.content or ""}

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Generate a text response to a single prompt."""
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        return self.chat(messages, temperature=temperature)["content"]

    def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Generate a response and parse it as a JSON object.

        Raises:
            UpstreamError: If the model does not return a JSON object.
        """
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        content = self.chat(messages, temperature=temperature, json_mode=True)["content"]
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error("Model returned invalid JSON: %.200s", content)
            raise UpstreamError("The AI service returned an invalid response") from e

        if not isinstance(data, dict):
            logger.error("Model returned JSON %s, expected object", type(data).__name__)
            raise UpstreamError("The AI service returned an invalid response")
        return data

    def test_connection(self) -> Dict[str, Any]:
        """Test the connection to the API.

        Returns:
            Dictionary with connection status and available models.
        """
        try:
            client = self._ensure_client()
            models = client.models.list()
            model_names = [m.id for m in models.data]

            return {
                "status": "connected",
                "base_url": self.base_url or "https://api.openai.com/v1",
                "available_models": model_names,
                "configured_model": self.model,
            }
        except Exception as e:
            return {
                "status": "error",
                "base_url": self.base_url or "https://api.openai.com/v1",
                "error": str(e),
            }
