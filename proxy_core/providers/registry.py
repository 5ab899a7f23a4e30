"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "elicit-chat"。
- provider_model：厂商实际提供的模型 ID，例如 "gpt-3.5-turbo"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置，便于后续升级或切换。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    models={
        "elicit-chat": ModelConfig(
            logical_name="elicit-chat",
            provider_model="gpt-3.5-turbo",
            max_tokens=500,
            default_temperature=0.7,
        )
    },
)

# Perplexity 要求 system 之后严格 user/assistant 交替，否则直接 400
PERPLEXITY_CONFIG = ProviderConfig(
    name="perplexity",
    base_url="https://api.perplexity.ai",
    models={
        "elicit-chat": ModelConfig(
            logical_name="elicit-chat",
            provider_model="sonar-medium-online",
            max_tokens=500,
            default_temperature=0.7,
        )
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
    "perplexity": PERPLEXITY_CONFIG,
}

# 前端历史上使用过的名字
PROVIDER_ALIASES: Mapping[str, str] = {
    "chatgpt": "openai",
    "gpt": "openai",
    "pplx": "perplexity",
}


def canonical_provider_name(name: str) -> str:
    key = name.strip().lower()
    return PROVIDER_ALIASES.get(key, key)


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写，支持别名。"""

    key = canonical_provider_name(name)
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
