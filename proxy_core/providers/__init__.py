"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口与公共实现 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各厂商的具体实现 (openai_client、perplexity_client)。
"""

from typing import Optional

from proxy_core.config.settings import settings
from proxy_core.domain.exceptions import ValidationError
from proxy_core.domain.models import Slot
from proxy_core.providers.base import ProviderClient
from proxy_core.providers.openai_client import OpenAIClient
from proxy_core.providers.perplexity_client import PerplexityClient
from proxy_core.providers.registry import canonical_provider_name, get_provider_config


PROVIDER_CLIENTS = {
    "openai": OpenAIClient,
    "perplexity": PerplexityClient,
}


def create_provider(name: Optional[str] = None, cfg=None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的首选 provider。"""

    cfg = cfg or settings
    try:
        provider_config = get_provider_config(name or getattr(cfg, "primary_provider", "openai"))
    except KeyError:
        raise ValidationError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {name!r}")
    return PROVIDER_CLIENTS[provider_config.name](cfg)


def resolve_slot(name: Optional[str], cfg=None) -> Slot:
    """把请求里的 apiProvider 映射为 primary / secondary 槽位。

    接受槽位名本身，也接受当前配置的 Provider 名或其别名（如 "chatgpt"）。
    """

    if name is None or not str(name).strip():
        return "primary"
    cfg = cfg or settings
    key = str(name).strip().lower()
    if key in ("primary", "secondary"):
        return key  # type: ignore[return-value]
    canonical = canonical_provider_name(key)
    if canonical == canonical_provider_name(cfg.primary_provider):
        return "primary"
    if canonical == canonical_provider_name(cfg.secondary_provider):
        return "secondary"
    raise ValidationError(code="UNKNOWN_PROVIDER", message=f"Unknown apiProvider: {name!r}")
