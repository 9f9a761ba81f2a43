from __future__ import annotations

from types import SimpleNamespace

import pytest

from cvblueprint.llm.providers import LLMProvider, ProviderConfig, parse_json


class StatusError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class Payload:
    def __init__(self, *, output_text: str = "", content: str | None = None):
        self.output_text = output_text
        if content is not None:
            self.choices = [SimpleNamespace(message=SimpleNamespace(content=content))]

    def model_dump(self) -> dict:
        return {"id": "payload"}


class RecordingEndpoint:
    def __init__(self, fn):
        self.fn = fn
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.fn(**kwargs)


class FakeClient:
    def __init__(self, *, responses_fn, chat_fn):
        self.responses = RecordingEndpoint(responses_fn)
        self.chat = SimpleNamespace(completions=RecordingEndpoint(chat_fn))


def _provider(client: FakeClient) -> LLMProvider:
    provider = LLMProvider(ProviderConfig(name="local", base_url="http://localhost:9999/v1", api_key="x", timeout_sec=5))
    provider.client = client
    return provider


def _not_found(**kwargs):
    raise StatusError("Not found", status_code=404)


def test_responses_path_sends_system_as_instructions() -> None:
    client = FakeClient(responses_fn=lambda **kwargs: Payload(output_text='{"ok": true}'), chat_fn=_not_found)

    payload = _provider(client).complete_json(model="gpt-4o", prompt="merge", system="be strict")

    assert payload == {"ok": True}
    assert client.responses.calls[0]["instructions"] == "be strict"
    assert client.chat.completions.calls == []


def test_chat_fallback_carries_system_message_and_json_mode() -> None:
    client = FakeClient(responses_fn=_not_found, chat_fn=lambda **kwargs: Payload(content='{"source": "chat"}'))

    payload = _provider(client).complete_json(model="qwen", prompt="merge", system="be strict")

    call = client.chat.completions.calls[0]
    assert payload == {"source": "chat"}
    assert call["messages"][0] == {"role": "system", "content": "be strict"}
    assert call["response_format"] == {"type": "json_object"}


def test_other_responses_errors_propagate() -> None:
    def responses_fn(**kwargs):
        raise StatusError("rate limited", status_code=429)

    client = FakeClient(responses_fn=responses_fn, chat_fn=lambda **kwargs: Payload(content="{}"))

    with pytest.raises(StatusError, match="rate limited"):
        _provider(client).complete_text(model="gpt-4o", prompt="ping")
    assert client.chat.completions.calls == []


def test_parse_json_handles_fences_and_garbage() -> None:
    assert parse_json('```json\n{"new_profile": {}}\n```') == {"new_profile": {}}
    assert parse_json("not json") == {}
    assert parse_json("[1, 2]") == {}
    assert parse_json("   ") == {}
