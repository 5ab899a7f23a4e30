"""JSON 行日志。

所有模块共用名为 ``proxy_core`` 的 logger，结构化字段通过
``extra={"extra": {...}}`` 传入并平铺到每一行 JSON 中。
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from proxy_core.config.settings import settings


LOGGER_NAME = "proxy_core"
LOG_FILE = "proxy.log"
# 可能包含训练员原文的字段
CONTENT_FIELDS = ("message", "user_message", "response", "body", "error")
REDACT_LIMIT = 64


def _redact(value):
    if isinstance(value, str) and len(value) > REDACT_LIMIT:
        return value[:REDACT_LIMIT] + "..."
    return value


class JsonFormatter(logging.Formatter):
    def __init__(self, redact: bool = False):
        super().__init__()
        self.redact = redact

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        fields = getattr(record, "extra", None)
        if isinstance(fields, dict):
            for key, value in fields.items():
                entry[key] = _redact(value) if self.redact and key in CONTENT_FIELDS else value
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logger(log_dir=None, console: bool = None) -> logging.Logger:
    """初始化 proxy_core logger，重复调用不会叠加 handler。"""
    log = logging.getLogger(LOGGER_NAME)
    if log.handlers:
        return log
    log.setLevel(logging.INFO)
    formatter = JsonFormatter(redact=settings.log_redact_content)

    target = Path(log_dir or settings.log_dir)
    target.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(target / LOG_FILE, encoding="utf-8")
    file_handler.setFormatter(formatter)
    log.addHandler(file_handler)

    if settings.log_to_console if console is None else console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        log.addHandler(stream)
    return log


logger = setup_logger()
