"""从请求体中提取最新的用户消息。

支持两种请求形态（按优先级）：

1. ``{"messages": [{"role": ..., "content": ...}, ...]}``：取最后一条
   role 为 user 的非空内容。
2. ``{"message": "..."}``：扁平字符串。

都取不到非空文本时抛出 NoMessageFound，由调用方决定回退文案。
"""

from typing import Any, List, Mapping, Optional

from proxy_core.domain.exceptions import NoMessageFound, ValidationError
from proxy_core.domain.models import ROLES, ChatTurn, ExtractedMessage


# 旧版前端存储里使用 sender=trainer/ai
ROLE_ALIASES = {
    "trainer": "user",
    "human": "user",
    "ai": "assistant",
    "bot": "assistant",
}


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def normalize_role(role: Any) -> str:
    key = str(role or "").strip().lower()
    key = ROLE_ALIASES.get(key, key)
    if key not in ROLES:
        raise ValidationError(code="INVALID_ROLE", message=f"Unknown role: {role!r}")
    return key


def normalize_turns(raw_turns: Any) -> List[ChatTurn]:
    """把 ChatTurn 形态的记录转换为 ChatTurn 列表，丢弃空内容。"""

    if raw_turns is None:
        return []
    if isinstance(raw_turns, (str, bytes)) or not isinstance(raw_turns, (list, tuple)):
        raise ValidationError(code="INVALID_MESSAGES", message="messages must be a list")
    turns: List[ChatTurn] = []
    for raw in raw_turns:
        if isinstance(raw, ChatTurn):
            turns.append(raw)
            continue
        role = normalize_role(_field(raw, "role") or _field(raw, "sender"))
        content = _field(raw, "content")
        if content is None:
            content = _field(raw, "text")
        if not isinstance(content, str) or not content.strip():
            continue
        turns.append(ChatTurn(role=role, content=content))
    return turns


def _last_user_text(turns: List[ChatTurn]) -> Optional[str]:
    for turn in reversed(turns):
        if turn.role == "user":
            return turn.content.strip()
    return None


def extract_user_message(payload: Any) -> ExtractedMessage:
    if payload is None:
        raise NoMessageFound()

    raw_turns = _field(payload, "messages")
    if raw_turns is not None:
        turns = normalize_turns(raw_turns)
        text = _last_user_text(turns)
        if text:
            return ExtractedMessage(text=text, turns=turns, from_messages=True)

    message = _field(payload, "message")
    if isinstance(message, str) and message.strip():
        text = message.strip()
        return ExtractedMessage(text=text, turns=[ChatTurn(role="user", content=text)])

    raise NoMessageFound()
