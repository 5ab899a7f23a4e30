"""对外 API 服务模块。

提供简化的函数接口供 HTTP 层或其他上层应用调用。
"""

import random
from typing import Any, Dict, Mapping, Optional

from proxy_core.agents.fallback import FallbackOrchestrator
from proxy_core.agents.proxy_agent import AgentConfig, ProxyAgent
from proxy_core.chat.canned import GENERIC_FALLBACK_REPLY
from proxy_core.config.settings import settings
from proxy_core.domain.conversation import HistoryStore
from proxy_core.domain.exceptions import ValidationError
from proxy_core.domain.models import ProxyReply, SendOptions
from proxy_core.infrastructure.logging.logger import logger
from proxy_core.infrastructure.storage.json_store import JsonHistoryStore
from proxy_core.infrastructure.storage.memory_store import InMemoryHistoryStore
from proxy_core.providers import create_provider, resolve_slot
from proxy_core.providers.registry import canonical_provider_name


_store: Optional[HistoryStore] = None
_agent: Optional[ProxyAgent] = None


def create_store(cfg=None) -> HistoryStore:
    cfg = cfg or settings
    if cfg.storage_backend == "json":
        return JsonHistoryStore(root=cfg.storage_root)
    return InMemoryHistoryStore()


def create_orchestrator(cfg=None, rng: Optional[random.Random] = None) -> FallbackOrchestrator:
    cfg = cfg or settings
    return FallbackOrchestrator(
        primary=create_provider(cfg.primary_provider, cfg),
        secondary=create_provider(cfg.secondary_provider, cfg),
        options=SendOptions(model=cfg.default_model),
        rate_limit_retries=cfg.rate_limit_retries,
        backoff_base=cfg.rate_limit_backoff,
        backoff_cap=cfg.rate_limit_backoff_cap,
        rng=rng,
    )


def build_agent(cfg=None, store: Optional[HistoryStore] = None) -> ProxyAgent:
    cfg = cfg or settings
    return ProxyAgent(
        store=store or create_store(cfg),
        orchestrator=create_orchestrator(cfg),
        config=AgentConfig(
            max_context_messages=cfg.max_context_messages,
            reflow_paragraphs=cfg.reflow_paragraphs,
        ),
    )


def get_default_agent() -> ProxyAgent:
    """获取默认的 ProxyAgent 实例（单例）。"""
    global _store, _agent
    if _store is None:
        _store = create_store(settings)
    if _agent is None:
        _agent = build_agent(settings, store=_store)
    return _agent


def run_proxy_chat(payload: Mapping[str, Any], agent: Optional[ProxyAgent] = None, cfg=None) -> Dict[str, Any]:
    """运行一次代理对话。

    Args:
        payload: 请求体，{message, conversationId?} 或 {messages, apiProvider?, conversationId?}
        agent: 可选的 ProxyAgent（测试时注入）
        cfg: 可选的配置对象，用于解析 apiProvider

    Returns:
        {response, provider, usedFallback, conversationId}

    Raises:
        ValidationError: 请求本身不合法（未知 apiProvider、非法会话 ID 等）
    """
    agent = agent or get_default_agent()
    preferred = resolve_slot(payload.get("apiProvider"), cfg)
    try:
        reply = agent.respond(payload, preferred)
    except ValidationError:
        raise
    except Exception as e:
        # 对训练员永远给出一句可继续对话的话，异常只进日志
        logger.exception("Proxy chat failed", extra={"extra": {
            "conversation_id": payload.get("conversationId"),
            "error": str(e),
        }})
        reply = local_fallback_reply(payload.get("conversationId"))
    return reply.to_dict()


def local_fallback_reply(conversation_id: Optional[str] = None) -> ProxyReply:
    return ProxyReply(
        response=GENERIC_FALLBACK_REPLY,
        provider="local",
        used_fallback=True,
        conversation_id=conversation_id,
    )


def health_status(cfg=None) -> Dict[str, Any]:
    """返回配置概况，只暴露布尔值，不暴露密钥。"""
    cfg = cfg or settings
    credentials = {
        name: bool(getattr(cfg, f"{name}_api_key", None))
        for name in (canonical_provider_name(cfg.primary_provider), canonical_provider_name(cfg.secondary_provider))
    }
    return {
        "status": "ok",
        "providers": {"primary": cfg.primary_provider, "secondary": cfg.secondary_provider},
        "credentials": credentials,
        "storage": cfg.storage_backend,
    }
