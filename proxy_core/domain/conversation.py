import re
from contextlib import AbstractContextManager
from typing import List, Protocol

from .exceptions import ValidationError
from .models import ChatTurn


CONVERSATION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_conversation_id(conversation_id: str) -> str:
    """会话 ID 会被用作目录名，只允许字母数字、下划线与连字符。"""

    if not isinstance(conversation_id, str) or not CONVERSATION_ID_RE.match(conversation_id):
        raise ValidationError(code="INVALID_CONVERSATION_ID", message=f"Invalid conversation id: {conversation_id!r}")
    return conversation_id


class HistoryStore(Protocol):
    def get_history(self, conversation_id: str) -> List[ChatTurn]:
        ...

    def append_turns(self, conversation_id: str, turns: List[ChatTurn]) -> None:
        ...

    def replace_history(self, conversation_id: str, turns: List[ChatTurn]) -> None:
        ...

    def lock(self, conversation_id: str) -> AbstractContextManager:
        ...
