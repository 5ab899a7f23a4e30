import pytest

from proxy_core.chat.extractor import extract_user_message, normalize_turns
from proxy_core.domain.exceptions import NoMessageFound, ValidationError
from proxy_core.domain.models import ChatTurn


def test_extract_last_user_turn():
    payload = {
        "messages": [
            {"role": "user", "content": "a"},
            {"role": "assistant", "content": "b"},
            {"role": "user", "content": "c"},
        ]
    }
    extracted = extract_user_message(payload)
    assert extracted.text == "c"
    assert extracted.from_messages
    assert [t.role for t in extracted.turns] == ["user", "assistant", "user"]


def test_extract_flat_message():
    extracted = extract_user_message({"message": "hi"})
    assert extracted.text == "hi"
    assert extracted.turns == [ChatTurn(role="user", content="hi")]
    assert not extracted.from_messages


def test_extract_empty_payload():
    with pytest.raises(NoMessageFound):
        extract_user_message({})
    with pytest.raises(NoMessageFound):
        extract_user_message(None)


def test_messages_take_priority_over_message():
    extracted = extract_user_message({"message": "flat", "messages": [{"role": "user", "content": "listed"}]})
    assert extracted.text == "listed"


def test_messages_without_user_falls_back_to_message():
    payload = {"message": "flat", "messages": [{"role": "assistant", "content": "hello"}]}
    assert extract_user_message(payload).text == "flat"


def test_blank_texts_signal_no_message():
    with pytest.raises(NoMessageFound):
        extract_user_message({"message": "   ", "messages": [{"role": "user", "content": ""}]})


def test_extract_from_object_attributes():
    class Body:
        messages = None
        message = "  kaji  "

    assert extract_user_message(Body()).text == "kaji"


def test_normalize_turns_role_aliases_and_empty_content():
    turns = normalize_turns(
        [
            {"sender": "ai", "text": "Welcome"},
            {"role": "trainer", "content": "hello"},
            {"role": "assistant", "content": ""},
        ]
    )
    assert turns == [
        ChatTurn(role="assistant", content="Welcome"),
        ChatTurn(role="user", content="hello"),
    ]


def test_normalize_turns_rejects_unknown_role():
    with pytest.raises(ValidationError):
        normalize_turns([{"role": "tool", "content": "x"}])


def test_normalize_turns_rejects_non_list():
    with pytest.raises(ValidationError):
        normalize_turns("hello")
