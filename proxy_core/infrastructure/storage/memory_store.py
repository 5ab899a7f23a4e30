from contextlib import AbstractContextManager
from typing import Dict, List

from proxy_core.domain.conversation import HistoryStore, validate_conversation_id
from proxy_core.domain.models import ChatTurn
from proxy_core.infrastructure.storage.locks import KeyedLocks


class InMemoryHistoryStore(HistoryStore):
    """进程内会话历史，生命周期与进程相同，没有淘汰策略。"""

    def __init__(self) -> None:
        self._histories: Dict[str, List[ChatTurn]] = {}
        self._locks = KeyedLocks()

    def get_history(self, conversation_id: str) -> List[ChatTurn]:
        validate_conversation_id(conversation_id)
        return list(self._histories.get(conversation_id, []))

    def append_turns(self, conversation_id: str, turns: List[ChatTurn]) -> None:
        validate_conversation_id(conversation_id)
        self._histories.setdefault(conversation_id, []).extend(turns)

    def replace_history(self, conversation_id: str, turns: List[ChatTurn]) -> None:
        validate_conversation_id(conversation_id)
        self._histories[conversation_id] = list(turns)

    def lock(self, conversation_id: str) -> AbstractContextManager:
        return self._locks.hold(conversation_id)
