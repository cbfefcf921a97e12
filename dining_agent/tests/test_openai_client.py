import json

import httpx
import pytest

from dining_agent.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from dining_agent.domain.models import ChatMessage, ChatRequest
from dining_agent.providers import create_provider
from dining_agent.providers.openai_client import OpenAIClient
from dining_agent.tools.suggestion_tools import YELP_TOOL, suggestion_tool_defs


class SettingsStub:
    openai_api_key = "sk-test-key-123"
    openai_base_url = "https://api.example.com/v1/"
    http_timeout = 1.0


class Resp:
    def __init__(self, status_code, lines=None, text=""):
        self.status_code = status_code
        self._lines = lines or []
        self.text = text
        self.read_called = False

    def __enter__(self):
        return self

    def __exit__(self, *a):
        return False

    def iter_lines(self):
        return iter(self._lines)

    def read(self):
        self.read_called = True
        return self.text.encode()


def _client_streaming(resp, captured):
    class Client:
        def __init__(self, *a, **kw):
            captured["client_kwargs"] = kw

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def stream(self, method, url, json=None, headers=None):
            captured["method"] = method
            captured["url"] = url
            captured["json"] = json
            captured["headers"] = headers
            if isinstance(resp, Exception):
                raise resp
            return resp

    return Client


def _sse(payload):
    return "data: " + json.dumps(payload)


def _req(**kw):
    return ChatRequest(
        provider="openai",
        model=kw.pop("model", "agent-chat"),
        messages=[ChatMessage(role="user", content="hi")],
        **kw,
    )


def test_text_stream(monkeypatch):
    captured = {}
    lines = [
        _sse({"choices": [{"index": 0, "delta": {"role": "assistant", "content": "Hel"}}]}),
        "",
        ": keep-alive",
        _sse({"choices": [{"index": 0, "delta": {"content": "lo"}, "finish_reason": "stop"}]}),
        "data: [DONE]",
    ]
    monkeypatch.setattr("httpx.Client", _client_streaming(Resp(200, lines), captured))
    chunks = list(OpenAIClient(SettingsStub()).chat_stream(_req()))
    text = "".join(c.choices[0].delta.content for c in chunks)
    assert text == "Hello"
    assert chunks[-1].choices[0].finish_reason == "stop"
    assert captured["method"] == "POST"
    assert captured["url"] == "https://api.example.com/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer sk-test-key-123"
    assert captured["json"]["model"] == "gpt-3.5-turbo"
    assert captured["json"]["stream"] is True
    assert "tools" not in captured["json"]


def test_tool_call_deltas_and_payload(monkeypatch):
    captured = {}
    lines = [
        _sse({"choices": [{"delta": {"tool_calls": [
            {"index": 0, "id": "call_1", "function": {"name": YELP_TOOL, "arguments": ""}}
        ]}}]}),
        _sse({"choices": [{"delta": {"tool_calls": [
            {"index": 0, "function": {"arguments": "{\"cuisine\": "}}
        ]}}]}),
        "data: [DONE]",
    ]
    monkeypatch.setattr("httpx.Client", _client_streaming(Resp(200, lines), captured))
    chunks = list(OpenAIClient(SettingsStub()).chat_stream(_req(tools=suggestion_tool_defs())))
    first = chunks[0].choices[0].tool_call_deltas[0]
    assert first.id == "call_1"
    assert first.name == YELP_TOOL
    assert chunks[1].choices[0].tool_call_deltas[0].arguments == "{\"cuisine\": "

    payload = captured["json"]
    assert payload["tool_choice"] == "auto"
    names = [t["function"]["name"] for t in payload["tools"]]
    assert names == ["get_restaurant_suggestions_google", YELP_TOOL]
    yelp = payload["tools"][1]["function"]["parameters"]
    assert yelp["required"] == ["cuisine", "location"]
    assert yelp["properties"]["attrs"]["type"] == "array"


def test_legacy_function_call_delta(monkeypatch):
    captured = {}
    lines = [_sse({"choices": [{"delta": {"function_call": {"name": "x", "arguments": "{}"}}}]})]
    monkeypatch.setattr("httpx.Client", _client_streaming(Resp(200, lines), captured))
    [chunk] = list(OpenAIClient(SettingsStub()).chat_stream(_req()))
    [delta] = chunk.choices[0].tool_call_deltas
    assert (delta.index, delta.name, delta.arguments) == (0, "x", "{}")


def test_summary_model_payload(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _client_streaming(Resp(200, []), captured))
    list(OpenAIClient(SettingsStub()).chat_stream(_req(model="summary-reviews")))
    assert captured["json"]["model"] == "gpt-4"
    assert captured["json"]["max_tokens"] == 256


def test_rate_limit(monkeypatch):
    monkeypatch.setattr("httpx.Client", _client_streaming(Resp(429), {}))
    with pytest.raises(RateLimitError) as ei:
        list(OpenAIClient(SettingsStub()).chat_stream(_req()))
    assert ei.value.http_status == 429


def test_server_error(monkeypatch):
    resp = Resp(500, text="upstream exploded")
    monkeypatch.setattr("httpx.Client", _client_streaming(resp, {}))
    with pytest.raises(ApiError) as ei:
        list(OpenAIClient(SettingsStub()).chat_stream(_req()))
    assert ei.value.http_status == 500
    assert ei.value.message == "upstream exploded"
    assert resp.read_called


def test_error_inside_stream(monkeypatch):
    lines = [_sse({"error": {"message": "overloaded"}})]
    monkeypatch.setattr("httpx.Client", _client_streaming(Resp(200, lines), {}))
    with pytest.raises(ApiError) as ei:
        list(OpenAIClient(SettingsStub()).chat_stream(_req()))
    assert ei.value.message == "overloaded"


def test_transport_error(monkeypatch):
    monkeypatch.setattr("httpx.Client", _client_streaming(httpx.ReadTimeout("slow"), {}))
    with pytest.raises(NetworkError):
        list(OpenAIClient(SettingsStub()).chat_stream(_req()))


def test_missing_key():
    class NoKey(SettingsStub):
        openai_api_key = None

    with pytest.raises(ValidationError) as ei:
        list(OpenAIClient(NoKey()).chat_stream(_req()))
    assert ei.value.code == "MISSING_API_KEY"


def test_create_provider():
    assert isinstance(create_provider(), OpenAIClient)
    assert isinstance(create_provider("OpenAI"), OpenAIClient)
    with pytest.raises(KeyError):
        create_provider("glm")
