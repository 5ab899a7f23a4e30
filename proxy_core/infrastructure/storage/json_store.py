import json
import os
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List
from uuid import uuid4

from proxy_core.config.settings import settings
from proxy_core.domain.conversation import HistoryStore, validate_conversation_id
from proxy_core.domain.exceptions import BusinessError
from proxy_core.domain.models import ChatTurn
from proxy_core.infrastructure.storage.locks import KeyedLocks


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class JsonHistoryStore(HistoryStore):
    """基于文件的会话历史。

    目录结构::

        <root>/conversations/<conversation_id>/meta.json
        <root>/conversations/<conversation_id>/messages.jsonl
    """

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._conv_root = self._root / "conversations"
        self._conv_root.mkdir(parents=True, exist_ok=True)
        self._locks = KeyedLocks()

    def get_history(self, conversation_id: str) -> List[ChatTurn]:
        msgs_path = self._conv_dir(conversation_id) / "messages.jsonl"
        if not msgs_path.exists():
            return []
        try:
            lines = msgs_path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))
        turns: List[ChatTurn] = []
        for line in lines:
            if not line.strip():
                continue
            try:
                data = json.loads(line)
                turns.append(ChatTurn(role=data["role"], content=data["content"]))
            except (ValueError, KeyError, BusinessError):
                # 半行写入或被手工改坏的记录直接跳过
                continue
        return turns

    def append_turns(self, conversation_id: str, turns: List[ChatTurn]) -> None:
        cdir = self._conv_dir(conversation_id)
        now = datetime.now(timezone.utc)
        try:
            cdir.mkdir(parents=True, exist_ok=True)
            with (cdir / "messages.jsonl").open("a", encoding="utf-8") as f:
                for turn in turns:
                    f.write(json.dumps(self._to_record(turn, now), ensure_ascii=False) + "\n")
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))
        self._touch_meta(cdir, conversation_id, now, added=len(turns))

    def replace_history(self, conversation_id: str, turns: List[ChatTurn]) -> None:
        cdir = self._conv_dir(conversation_id)
        now = datetime.now(timezone.utc)
        body = "".join(json.dumps(self._to_record(t, now), ensure_ascii=False) + "\n" for t in turns)
        try:
            cdir.mkdir(parents=True, exist_ok=True)
            self._atomic_write(cdir / "messages.jsonl", body)
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))
        self._touch_meta(cdir, conversation_id, now, total=len(turns))

    def lock(self, conversation_id: str) -> AbstractContextManager:
        return self._locks.hold(conversation_id)

    def _conv_dir(self, conversation_id: str) -> Path:
        return self._conv_root / validate_conversation_id(conversation_id)

    def _touch_meta(self, cdir: Path, conversation_id: str, now: datetime, added: int = 0, total: int | None = None) -> None:
        meta_path = cdir / "meta.json"
        meta: Dict[str, Any] = {"id": conversation_id, "created_at": _iso(now), "turn_count": 0}
        if meta_path.exists():
            try:
                meta.update(json.loads(meta_path.read_text(encoding="utf-8")))
            except (OSError, ValueError):
                pass  # 损坏的 meta 直接重建
        meta["updated_at"] = _iso(now)
        meta["turn_count"] = total if total is not None else int(meta.get("turn_count", 0)) + added
        try:
            self._atomic_write(meta_path, json.dumps(meta, ensure_ascii=False))
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))

    @staticmethod
    def _atomic_write(path: Path, text: str) -> None:
        tmp_path = path.with_name(f"{path.stem}.{uuid4().hex}.tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)

    @staticmethod
    def _to_record(turn: ChatTurn, now: datetime) -> Dict[str, Any]:
        return {"role": turn.role, "content": turn.content, "created_at": _iso(now)}
