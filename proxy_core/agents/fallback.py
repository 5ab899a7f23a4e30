"""Provider 降级编排。

调用顺序严格串行：

1. 首选 Provider（primary 或 secondary，由请求决定）；
2. 失败后调用另一个 Provider，使用同一份已校验的历史，只调用一次；
3. 仍然失败则根据最新用户消息的启发式分类生成本地回复。

任何 ProviderError 都在这里被捕获并记录到 ProviderResult.failures，
不会向 HTTP 层抛出。429 限流可以在切换前对同一 Provider 做有限次数的
指数退避重试。
"""

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional

from proxy_core.chat.canned import local_reply
from proxy_core.chat.heuristics import classify
from proxy_core.domain.exceptions import ProviderError, RateLimitError
from proxy_core.domain.models import ChatTurn, ProviderFailure, ProviderResult, SendOptions, Slot
from proxy_core.infrastructure.logging.logger import logger
from proxy_core.providers.base import ProviderClient


class FallbackOrchestrator:
    def __init__(
        self,
        primary: ProviderClient,
        secondary: ProviderClient,
        options: Optional[SendOptions] = None,
        rate_limit_retries: int = 0,
        backoff_base: float = 0.5,
        backoff_cap: float = 4.0,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        self._clients: Dict[Slot, ProviderClient] = {"primary": primary, "secondary": secondary}
        self._options = options or SendOptions()
        self._rate_limit_retries = max(0, rate_limit_retries)
        self._backoff_base = backoff_base
        self._backoff_cap = backoff_cap
        self._sleep = sleep
        self._rng = rng

    def resolve(
        self,
        history: List[ChatTurn],
        preferred: Slot = "primary",
        user_message: Optional[str] = None,
    ) -> ProviderResult:
        """按槽位顺序调用 Provider，全部失败时返回本地回复。

        user_message 是训练员本轮的原始消息；校验后的历史末尾可能是补位的
        占位轮次，所以本地回复优先按它分类，缺省时才回看历史。
        """
        order: List[Slot] = ["primary", "secondary"] if preferred == "primary" else ["secondary", "primary"]
        failures: List[ProviderFailure] = []

        for attempt, slot in enumerate(order):
            client = self._clients[slot]
            try:
                text = self._send_with_backoff(client, history)
            except ProviderError as e:
                failure = ProviderFailure(slot=slot, provider_name=client.name, code=e.code, message=e.message)
                failures.append(failure)
                self._log(logging.WARNING, "Provider call failed", failure.to_dict())
                continue
            return ProviderResult(text=text, provider=slot, used_fallback=attempt > 0, failures=failures)

        latest = user_message
        if latest is None:
            latest = next((t.content for t in reversed(history) if t.role == "user"), "")
        reply = local_reply(classify(latest), latest, history, self._rng)
        self._log(
            logging.ERROR,
            "All providers failed, using local reply",
            {"failures": [f.to_dict() for f in failures]},
        )
        return ProviderResult(text=reply, provider="local", used_fallback=True, failures=failures)

    def _send_with_backoff(self, client: ProviderClient, history: List[ChatTurn]) -> str:
        attempt = 0
        while True:
            try:
                return client.send(history, self._options)
            except RateLimitError:
                if attempt >= self._rate_limit_retries:
                    raise
                delay = min(self._backoff_cap, self._backoff_base * (2 ** attempt))
                self._log(logging.INFO, "Rate limited, backing off", {"provider": client.name, "delay": delay})
                self._sleep(delay)
                attempt += 1

    @staticmethod
    def _log(level: int, msg: str, fields: Dict[str, Any]) -> None:
        logger.log(level, msg, extra={"extra": fields})
