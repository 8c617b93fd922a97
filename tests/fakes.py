"""Fake LLM providers for tests."""

import asyncio
from typing import Any

from llm.base import BaseLLM


class StaticLLM(BaseLLM):
    """Returns the same response for every prompt and records each call."""

    def __init__(self, response: Any):
        self.response = response
        self.calls: list[dict[str, Any]] = []

    @property
    def model_name(self) -> str:
        return "static"

    async def complete(self, prompt, schema=None, system=None):
        self.calls.append({"prompt": prompt, "schema": schema, "system": system})
        return self.response


class FailingLLM(BaseLLM):
    """Raises on every call."""

    def __init__(self, error: Exception | None = None):
        self.error = error or RuntimeError("service unavailable")
        self.calls = 0

    @property
    def model_name(self) -> str:
        return "failing"

    async def complete(self, prompt, schema=None, system=None):
        self.calls += 1
        raise self.error


class SlowLLM(BaseLLM):
    """Sleeps longer than any test timeout."""

    @property
    def model_name(self) -> str:
        return "slow"

    async def complete(self, prompt, schema=None, system=None):
        await asyncio.sleep(10)
        return {}
