import random
from types import SimpleNamespace

from fastapi.testclient import TestClient

from proxy_core.agents.fallback import FallbackOrchestrator
from proxy_core.agents.proxy_agent import ProxyAgent
from proxy_core.api import service
from proxy_core.api.app import PROXY_PATH, create_app
from proxy_core.chat import canned
from proxy_core.domain.exceptions import ProviderHTTPError
from proxy_core.infrastructure.storage.memory_store import InMemoryHistoryStore


class FakeClient:
    def __init__(self, name, replies=None, error=None):
        self.name = name
        self._replies = list(replies or [])
        self._error = error
        self.calls = []

    def send(self, history, options=None):
        self.calls.append(list(history))
        if self._error is not None:
            raise self._error
        return self._replies.pop(0)


class BrokenAgent:
    def respond(self, payload, preferred="primary"):
        raise RuntimeError("store exploded")


def _cfg(**overrides):
    values = dict(
        primary_provider="openai",
        secondary_provider="perplexity",
        openai_api_key="sk-test-0123456789",
        perplexity_api_key=None,
        storage_backend="memory",
        cors_origins=["*"],
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _client(primary, secondary):
    agent = ProxyAgent(
        store=InMemoryHistoryStore(),
        orchestrator=FallbackOrchestrator(primary, secondary, rng=random.Random(0)),
        rng=random.Random(0),
    )
    return TestClient(create_app(agent=agent, cfg=_cfg()))


def test_acknowledgement_needs_no_provider():
    primary, secondary = FakeClient("openai", ["unused"]), FakeClient("perplexity", ["unused"])
    resp = _client(primary, secondary).post(PROXY_PATH, json={"message": "okay"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["response"] == canned.ACKNOWLEDGEMENT_REPLY
    assert data["provider"] == "local"
    assert data["usedFallback"] is False
    assert data["conversationId"]
    assert primary.calls == [] and secondary.calls == []


def test_messages_shape_uses_primary():
    primary = FakeClient("openai", ["Thank you! How do you say 'rain'?"])
    client = _client(primary, FakeClient("perplexity"))
    resp = client.post(PROXY_PATH, json={
        "messages": [
            {"role": "assistant", "content": "How do you say 'water'?"},
            {"role": "user", "content": "We say tui."},
        ],
        "apiProvider": "openai",
        "conversationId": "session-1",
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["provider"] == "primary"
    assert data["usedFallback"] is False
    assert data["conversationId"] == "session-1"
    assert data["response"] == "Thank you!\n\nHow do you say 'rain'?"
    sent = primary.calls[0]
    assert sent[0].role == "system"
    assert sent[-1].content == "We say tui."


def test_preferred_secondary_via_alias():
    primary = FakeClient("openai", ["unused"])
    secondary = FakeClient("perplexity", ["Lovely. What is 'fire'?"])
    resp = _client(primary, secondary).post(PROXY_PATH, json={"message": "Water is tui.", "apiProvider": "pplx"})
    assert resp.json()["provider"] == "secondary"
    assert primary.calls == []


def test_both_providers_failing_returns_local():
    primary = FakeClient("openai", error=ProviderHTTPError("openai", 500, "boom"))
    secondary = FakeClient("perplexity", error=ProviderHTTPError("perplexity", 503, "down"))
    resp = _client(primary, secondary).post(PROXY_PATH, json={"message": "Water is tui in our village."})
    assert resp.status_code == 200
    data = resp.json()
    assert data["provider"] == "local"
    assert data["usedFallback"] is True
    assert data["response"]
    assert len(primary.calls) == 1 and len(secondary.calls) == 1


def test_empty_body_is_rejected():
    resp = _client(FakeClient("openai"), FakeClient("perplexity")).post(PROXY_PATH, json={})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_REQUEST"


def test_invalid_json_is_rejected():
    resp = _client(FakeClient("openai"), FakeClient("perplexity")).post(
        PROXY_PATH, content="{not json", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_JSON"


def test_non_object_body_is_rejected():
    resp = _client(FakeClient("openai"), FakeClient("perplexity")).post(PROXY_PATH, json=["hello"])
    assert resp.status_code == 400


def test_messages_must_be_a_list():
    resp = _client(FakeClient("openai"), FakeClient("perplexity")).post(PROXY_PATH, json={"messages": "hello"})
    assert resp.status_code == 400


def test_unknown_provider_is_rejected():
    resp = _client(FakeClient("openai"), FakeClient("perplexity")).post(
        PROXY_PATH, json={"message": "hello", "apiProvider": "claude"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "UNKNOWN_PROVIDER"


def test_invalid_conversation_id_is_rejected():
    resp = _client(FakeClient("openai"), FakeClient("perplexity")).post(
        PROXY_PATH, json={"message": "hello", "conversationId": "../etc"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_CONVERSATION_ID"


def test_preflight():
    client = _client(FakeClient("openai"), FakeClient("perplexity"))
    bare = client.options(PROXY_PATH)
    assert bare.status_code == 200
    assert bare.headers["access-control-allow-origin"] == "*"

    cors = client.options(PROXY_PATH, headers={
        "Origin": "http://localhost:5173",
        "Access-Control-Request-Method": "POST",
    })
    assert cors.status_code == 200
    assert "access-control-allow-origin" in cors.headers


def test_unexpected_error_still_returns_reply():
    client = TestClient(create_app(agent=BrokenAgent(), cfg=_cfg()))
    resp = client.post(PROXY_PATH, json={"message": "hello", "conversationId": "c-9"})
    assert resp.status_code == 200
    assert resp.json() == {
        "response": canned.GENERIC_FALLBACK_REPLY,
        "provider": "local",
        "usedFallback": True,
        "conversationId": "c-9",
    }


def test_health_reports_booleans_only():
    resp = _client(FakeClient("openai"), FakeClient("perplexity")).get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["credentials"] == {"openai": True, "perplexity": False}
    assert "sk-test-0123456789" not in resp.text


def test_run_proxy_chat_without_http():
    agent = ProxyAgent(
        store=InMemoryHistoryStore(),
        orchestrator=FallbackOrchestrator(FakeClient("openai"), FakeClient("perplexity")),
    )
    result = service.run_proxy_chat({"message": "ok"}, agent=agent, cfg=_cfg())
    assert result["response"] == canned.ACKNOWLEDGEMENT_REPLY
    assert result["provider"] == "local"
