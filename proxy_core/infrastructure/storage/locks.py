import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterator


class KeyedLocks:
    """按会话 ID 分配的互斥锁：同一会话串行，不同会话互不影响。"""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._guard = threading.Lock()  # protects dict access

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks[key]
        with lock:
            yield
