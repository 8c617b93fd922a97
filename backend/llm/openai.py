"""OpenAI LLM provider."""

import json
import logging
import os
from typing import Any

import httpx
import weave

from llm.base import BaseLLM

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


class LLMResponseError(ValueError):
    """Raised when the provider returns something that is not usable JSON."""


class OpenAILLM(BaseLLM):
    """OpenAI LLM provider using the chat completions API.

    Supports structured outputs via JSON schema.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        temperature: float = 0.3,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the OpenAI LLM.

        Args:
            model: Model name to use. Defaults to LLM_MODEL env var or gpt-4o-mini.
            api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            temperature: Sampling temperature.
            timeout: HTTP timeout in seconds.
            transport: Optional httpx transport, e.g. for a proxy or tests.
        """
        self._model = model or os.getenv("LLM_MODEL", DEFAULT_MODEL)
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._temperature = temperature
        self._timeout = timeout
        self._transport = transport

        if not self._api_key:
            raise ValueError(
                "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
            )

        logger.info("Initialized OpenAI LLM with model: %s", self._model)

    @property
    def model_name(self) -> str:
        """Return the model name being used."""
        return self._model

    @weave.op()
    async def complete(
        self,
        prompt: str,
        schema: dict[str, Any] | None = None,
        system: str | None = None,
    ) -> dict[str, Any]:
        """Generate a JSON completion using OpenAI's API.

        Args:
            prompt: The prompt to send to the LLM.
            schema: Optional JSON schema for structured output.
            system: Optional system instruction.

        Returns:
            The parsed JSON object returned by the model.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status.
            LLMResponseError: If the response is empty or not a JSON object.
        """
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
        }

        # Use structured output if schema provided, plain JSON mode otherwise
        if schema:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "response",
                    "strict": True,
                    "schema": schema,
                },
            }
        else:
            payload["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                CHAT_COMPLETIONS_URL,
                headers=headers,
                json=payload,
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseError(f"Unexpected response shape: {e}") from e

        if not content:
            raise LLMResponseError("Empty completion")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse LLM response as JSON: %s", e)
            raise LLMResponseError("Failed to parse response") from e

        if not isinstance(parsed, dict):
            raise LLMResponseError("Expected a JSON object")
        return parsed
