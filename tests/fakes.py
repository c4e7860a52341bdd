# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable

from taskwise.core.ports import ChatMessage


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Yields the predefined chunks one by one
    - Raises `error` after yielding the chunks, if set
    """

    def __init__(self, chunks: list[str] | None = None, error: Exception | None = None) -> None:
        self.chunks = chunks if chunks is not None else ["ok"]
        self.error = error
        self.calls: list[tuple[list[ChatMessage], str]] = []

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        self.calls.append((list(messages), system_prompt))
        yield from self.chunks
        if self.error is not None:
            raise self.error


class AllowAllRateLimiter:
    """RateLimiter that never limits but records what was asked."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def limit(self, name: str, *, key: str) -> tuple[bool, float]:
        self.calls.append((name, key))
        return True, 0.0


class DenyRateLimiter:
    """RateLimiter that rejects the given limit names."""

    def __init__(self, *names: str, retry_after: float = 1.5) -> None:
        self.names = set(names)
        self.retry_after = retry_after

    def limit(self, name: str, *, key: str) -> tuple[bool, float]:
        if name in self.names:
            return False, self.retry_after
        return True, 0.0
