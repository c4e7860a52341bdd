# src/taskwise/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no external API is configured.

    Echoes the user's question and the task context the assistant injected, so the
    rest of the assistant flow (threads, messages) keeps working without network access.
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        question = user_text.rsplit("User question:", 1)[-1].strip()

        yield (
            "Offline mode: no AI provider is configured.\n"
            "Set TASKWISE_LLM_API_KEY (and TASKWISE_LLM_MODELS) to enable real answers.\n\n"
            f"You asked: {question}"
        )
