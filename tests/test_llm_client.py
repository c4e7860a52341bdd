# tests/test_llm_client.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from taskwise.llm.client import OpenAILLMClient, friendly_llm_error_message


def _chunk(text: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class FakeCompletions:
    """Scripted `client.chat.completions`: model -> list of chunks or an exception."""

    def __init__(self, script: dict) -> None:
        self.script = script
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.script[kwargs["model"]]
        if isinstance(outcome, Exception):
            raise outcome
        return iter(outcome)


def _client(script: dict, models: list[str]) -> tuple[OpenAILLMClient, FakeCompletions]:
    completions = FakeCompletions(script)
    fake_openai = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    settings = SimpleNamespace(llm_models=models, llm_first_token_timeout=20.0)
    return OpenAILLMClient(settings, client=fake_openai), completions


def test_streams_content_and_sends_system_prompt() -> None:
    client, completions = _client({"m1": [_chunk(None), _chunk("Hel"), _chunk("lo")]}, ["m1"])

    out = list(client.stream_chat([{"role": "user", "content": "hi"}], "be brief"))

    assert out == ["Hel", "lo"]
    sent = completions.calls[0]["messages"]
    assert sent[0] == {"role": "system", "content": "be brief"}
    assert sent[1] == {"role": "user", "content": "hi"}


def test_falls_back_to_next_model() -> None:
    client, completions = _client(
        {"broken": ValueError("boom"), "empty": [_chunk(None)], "good": [_chunk("ok")]},
        ["broken", "empty", "good"],
    )

    assert list(client.stream_chat([], "sys")) == ["ok"]
    assert [c["model"] for c in completions.calls] == ["broken", "empty", "good"]


def test_all_models_failing_raises_runtime_error() -> None:
    client, _ = _client({"a": ValueError("boom")}, ["a"])
    with pytest.raises(RuntimeError):
        list(client.stream_chat([], "sys"))


def test_interrupted_stream_is_not_retried_on_another_model() -> None:
    def broken_stream():
        yield _chunk("partial")
        raise ValueError("connection reset")

    client, completions = _client({"a": broken_stream(), "b": [_chunk("again")]}, ["a", "b"])

    out: list[str] = []
    with pytest.raises(RuntimeError, match="interrupted"):
        for piece in client.stream_chat([], "sys"):
            out.append(piece)

    assert out == ["partial"]
    assert len(completions.calls) == 1


def test_missing_key_is_reported() -> None:
    with pytest.raises(RuntimeError) as ei:
        OpenAILLMClient(SimpleNamespace(llm_api_key=None, llm_base_url="https://x"))
    assert "TASKWISE_LLM_API_KEY" in friendly_llm_error_message(ei.value)


def test_empty_model_list() -> None:
    client, _ = _client({}, [])
    with pytest.raises(RuntimeError) as ei:
        list(client.stream_chat([], "sys"))
    assert "TASKWISE_LLM_MODELS" in friendly_llm_error_message(ei.value)
