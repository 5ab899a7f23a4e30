"""代理 Agent 核心模块。

实现一次请求的完整流水线：提取用户消息、启发式短路、组装并校验历史、
调用 FallbackOrchestrator、清理回复并写回会话历史。
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from proxy_core.agents.fallback import FallbackOrchestrator
from proxy_core.chat.canned import ACKNOWLEDGEMENT_REPLY, WELCOME_REPLY, clarification_response
from proxy_core.chat.extractor import extract_user_message
from proxy_core.chat.heuristics import classify
from proxy_core.chat.sanitizer import sanitize_response
from proxy_core.chat.sequence import trim_history, validate_sequence
from proxy_core.domain.conversation import HistoryStore, validate_conversation_id
from proxy_core.domain.exceptions import NoMessageFound
from proxy_core.domain.models import ChatTurn, ExtractedMessage, ProxyReply, Slot
from proxy_core.infrastructure.logging.logger import logger
from proxy_core.prompts import load_system_prompt


@dataclass
class AgentConfig:
    agent_type: str = "elicitation"
    max_context_messages: int = 20  # 发送给 Provider 的最大非 system 消息数
    reflow_paragraphs: bool = True


class ProxyAgent:
    def __init__(
        self,
        store: HistoryStore,
        orchestrator: FallbackOrchestrator,
        config: Optional[AgentConfig] = None,
        system_prompt: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._orchestrator = orchestrator
        self._config = config or AgentConfig()
        self._system_prompt = system_prompt or load_system_prompt(self._config.agent_type)
        self._rng = rng

    def respond(self, payload: Mapping[str, Any], preferred: Slot = "primary") -> ProxyReply:
        """处理一次代理请求。

        Args:
            payload: 已解码的请求体（message 或 messages 形态）
            preferred: 首选 Provider 槽位

        Returns:
            ProxyReply，任何 Provider 失败都体现在 provider/used_fallback 上
        """
        start_time = time.time()
        conversation_id = payload.get("conversationId") or payload.get("conversation_id") or f"c-{uuid4().hex}"
        validate_conversation_id(conversation_id)
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "conversation_id": conversation_id,
        }

        with self._store.lock(conversation_id):
            stored = self._store.get_history(conversation_id)
            try:
                extracted = extract_user_message(payload)
            except NoMessageFound:
                self._log(logging.INFO, "No user message, sending welcome prompt", log_ctx)
                if not stored:
                    self._store.append_turns(conversation_id, [ChatTurn(role="assistant", content=WELCOME_REPLY)])
                return ProxyReply(response=WELCOME_REPLY, provider="local", used_fallback=False,
                                  conversation_id=conversation_id)

            if extracted.from_messages:
                # 前端自己维护历史时以前端为准
                base = [t for t in extracted.turns if t.role != "system"]
            else:
                base = [t for t in stored if t.role != "system"] + extracted.turns

            reply = self._short_circuit(extracted, base)
            if reply is None:
                history = self._build_history(extracted, base)
                result = self._orchestrator.resolve(history, preferred, user_message=extracted.text)
                text = result.text
                if result.provider != "local":
                    text = sanitize_response(text, reflow=self._config.reflow_paragraphs)
                reply = ProxyReply(
                    response=text,
                    provider=result.provider,
                    used_fallback=result.used_fallback,
                    conversation_id=conversation_id,
                    failures=result.failures,
                )
            else:
                reply.conversation_id = conversation_id
                self._log(logging.INFO, "Short-circuited trivial input", log_ctx)

            self._persist(conversation_id, extracted, base, reply.response)

        self._log(
            logging.INFO,
            "Completed proxy step",
            log_ctx,
            provider=reply.provider,
            used_fallback=reply.used_fallback,
            failures=len(reply.failures),
            elapsed_seconds=round(time.time() - start_time, 2),
        )
        return reply

    def _short_circuit(self, extracted: ExtractedMessage, base: List[ChatTurn]) -> Optional[ProxyReply]:
        flags = classify(extracted.text)
        if flags.is_acknowledgement:
            return ProxyReply(response=ACKNOWLEDGEMENT_REPLY, provider="local", used_fallback=False)
        if flags.is_likely_incomplete:
            text = clarification_response(extracted.text, base, self._rng)
            return ProxyReply(response=text, provider="local", used_fallback=False)
        return None

    def _build_history(self, extracted: ExtractedMessage, base: List[ChatTurn]) -> List[ChatTurn]:
        system = [t for t in extracted.turns if t.role == "system"]
        if not system:
            system = [ChatTurn(role="system", content=self._system_prompt)]
        history = trim_history(system + base, self._config.max_context_messages)
        return validate_sequence(history)

    def _persist(self, conversation_id: str, extracted: ExtractedMessage, base: List[ChatTurn], response: str) -> None:
        assistant = ChatTurn(role="assistant", content=response)
        if extracted.from_messages:
            self._store.replace_history(conversation_id, base + [assistant])
        else:
            self._store.append_turns(conversation_id, extracted.turns + [assistant])

    def _log(self, level: int, msg: str, ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(ctx)
        payload.update(fields)
        logger.log(level, msg, extra={"extra": payload})
