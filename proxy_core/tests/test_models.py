import pytest

from proxy_core.domain.exceptions import ValidationError
from proxy_core.domain.models import ChatTurn, ProxyReply


def test_models_exist():
    turn = ChatTurn(role="user", content="hi")
    assert turn.role == "user"
    assert turn.to_payload() == {"role": "user", "content": "hi"}


def test_chat_turn_is_immutable():
    turn = ChatTurn(role="user", content="hi")
    with pytest.raises(AttributeError):
        turn.content = "changed"


@pytest.mark.parametrize("role, content", [("tool", "x"), ("user", ""), ("assistant", "   ")])
def test_chat_turn_invariants(role, content):
    with pytest.raises(ValidationError):
        ChatTurn(role=role, content=content)


def test_proxy_reply_serialization():
    reply = ProxyReply(response="hello", provider="local", used_fallback=True, conversation_id="c-1")
    assert reply.to_dict() == {
        "response": "hello",
        "provider": "local",
        "usedFallback": True,
        "conversationId": "c-1",
    }
    assert "conversationId" not in ProxyReply(response="x", provider="primary", used_fallback=False).to_dict()
