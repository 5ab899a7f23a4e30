import httpx
import pytest

from proxy_core.agents.fallback import FallbackOrchestrator
from proxy_core.domain.exceptions import (
    MissingCredential,
    NetworkError,
    ProviderError,
    ProviderHTTPError,
    ProviderMalformedResponse,
    ProviderTimeoutError,
    RateLimitError,
)
from proxy_core.domain.models import ChatTurn, SendOptions
from proxy_core.providers.openai_client import OpenAIClient


class SettingsStub:
    openai_api_key = "sk-test-openai"
    http_timeout = 1.0
    openai_base_url = "https://api.openai.com/v1"
    openai_model = None


HISTORY = [
    ChatTurn(role="system", content="sys"),
    ChatTurn(role="user", content="hi"),
]


def _fake_client(monkeypatch, status_code=200, body=None, text="", raise_exc=None, captured=None):
    class Resp:
        def __init__(self):
            self.status_code = status_code
            self.text = text

        def json(self):
            if body is None:
                raise ValueError("no json")
            return body

    class Client:
        def __init__(self, *a, **kw):
            if captured is not None:
                captured["timeout"] = kw.get("timeout")

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, headers=None, **_):
            if captured is not None:
                captured["url"] = url
                captured["payload"] = json
                captured["headers"] = headers
            if raise_exc is not None:
                raise raise_exc
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)


def test_openai_client_basic(monkeypatch):
    captured = {}
    _fake_client(
        monkeypatch,
        body={"choices": [{"index": 0, "message": {"role": "assistant", "content": "ok"}, "finish_reason": "stop"}]},
        captured=captured,
    )
    text = OpenAIClient(SettingsStub()).send(HISTORY)
    assert text == "ok"
    assert captured["url"] == "https://api.openai.com/v1/chat/completions"
    assert captured["timeout"] == 1.0
    assert captured["headers"]["Authorization"] == "Bearer sk-test-openai"
    payload = captured["payload"]
    assert payload["model"] == "gpt-3.5-turbo"
    assert payload["max_tokens"] == 500
    assert payload["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


def test_openai_client_options_and_model_override(monkeypatch):
    class Settings(SettingsStub):
        openai_model = "gpt-4o-mini"

    captured = {}
    _fake_client(monkeypatch, body={"choices": [{"message": {"content": "x"}}]}, captured=captured)
    OpenAIClient(Settings()).send(HISTORY, SendOptions(temperature=0.0, max_tokens=64))
    payload = captured["payload"]
    assert payload["model"] == "gpt-4o-mini"
    assert payload["temperature"] == 0.0
    assert payload["max_tokens"] == 64


def test_openai_client_returns_raw_text(monkeypatch):
    raw = "<think>plan</think>Hello there"
    _fake_client(monkeypatch, body={"choices": [{"message": {"content": raw}}]})
    assert OpenAIClient(SettingsStub()).send(HISTORY) == raw


def test_openai_client_missing_key_skips_network(monkeypatch):
    class NoKey(SettingsStub):
        openai_api_key = None

    class Client:
        def __init__(self, *a, **kw):
            raise AssertionError("network must not be touched without a key")

    monkeypatch.setattr("httpx.Client", Client)
    with pytest.raises(MissingCredential) as exc:
        OpenAIClient(NoKey()).send(HISTORY)
    assert exc.value.code == "MISSING_API_KEY"


def test_openai_client_http_error(monkeypatch):
    _fake_client(monkeypatch, status_code=503, text="upstream down")
    with pytest.raises(ProviderHTTPError) as exc:
        OpenAIClient(SettingsStub()).send(HISTORY)
    assert exc.value.status == 503
    assert exc.value.body == "upstream down"
    assert not isinstance(exc.value, RateLimitError)


def test_openai_client_rate_limit(monkeypatch):
    _fake_client(monkeypatch, status_code=429, text="slow down")
    with pytest.raises(RateLimitError) as exc:
        OpenAIClient(SettingsStub()).send(HISTORY)
    assert exc.value.status == 429


@pytest.mark.parametrize(
    "body",
    [
        None,
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": "   "}}]},
        ["not", "a", "dict"],
    ],
)
def test_openai_client_malformed_response(monkeypatch, body):
    _fake_client(monkeypatch, body=body)
    with pytest.raises(ProviderMalformedResponse):
        OpenAIClient(SettingsStub()).send(HISTORY)


def test_openai_client_timeout(monkeypatch):
    _fake_client(monkeypatch, raise_exc=httpx.ReadTimeout("timed out"))
    with pytest.raises(ProviderTimeoutError):
        OpenAIClient(SettingsStub()).send(HISTORY)


def test_openai_client_network_error(monkeypatch):
    _fake_client(monkeypatch, raise_exc=httpx.ConnectError("connection refused"))
    with pytest.raises(NetworkError):
        OpenAIClient(SettingsStub()).send(HISTORY)


def test_openai_client_invalid_base_url(monkeypatch):
    _fake_client(monkeypatch, raise_exc=httpx.InvalidURL("Invalid port: ':1'"))
    with pytest.raises(ProviderError) as exc:
        OpenAIClient(SettingsStub()).send(HISTORY)
    assert exc.value.code == "INVALID_BASE_URL"


def test_invalid_base_url_falls_through_to_secondary():
    class BadUrlSettings(SettingsStub):
        openai_base_url = "https://[::1/v1"

    class Secondary:
        name = "perplexity"

        def __init__(self):
            self.calls = []

        def send(self, history, options=None):
            self.calls.append(history)
            return "From the backup."

    secondary = Secondary()
    result = FallbackOrchestrator(OpenAIClient(BadUrlSettings()), secondary).resolve(HISTORY)
    assert result.provider == "secondary"
    assert result.failures[0].code == "INVALID_BASE_URL"
    assert len(secondary.calls) == 1
