"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置，优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("PROXY_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class ProxySettings(BaseSettings):
    """代理服务配置（使用 Pydantic）。"""

    # ---- Provider 相关配置 ----
    primary_provider: str = Field(default="openai", description="首选 Provider 名称")
    secondary_provider: str = Field(default="perplexity", description="备用 Provider 名称")
    default_model: str = Field(
        default="elicit-chat",
        description="逻辑模型名，由 registry 映射为具体厂商模型",
    )

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API 密钥")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI API 基础URL")
    openai_model: Optional[str] = Field(default=None, description="覆盖 registry 中的 OpenAI 模型 ID")
    # Perplexity
    perplexity_api_key: Optional[str] = Field(default=None, description="Perplexity API 密钥")
    perplexity_base_url: str = Field(default="https://api.perplexity.ai", description="Perplexity API 基础URL")
    perplexity_model: Optional[str] = Field(default=None, description="覆盖 registry 中的 Perplexity 模型 ID")

    http_timeout: float = Field(default=20.0, ge=1.0, le=120.0, description="单次 Provider 调用超时（秒）")
    max_context_messages: int = Field(default=20, ge=1, le=100, description="发送给 Provider 的最大上下文消息数")

    # ---- 限流退避（仅针对 429，次数有上限） ----
    rate_limit_retries: int = Field(default=1, ge=0, le=3, description="429 时同一 Provider 的最大重试次数")
    rate_limit_backoff: float = Field(default=0.5, ge=0.0, description="首次退避时间（秒）")
    rate_limit_backoff_cap: float = Field(default=4.0, ge=0.0, description="单次退避时间上限（秒）")

    reflow_paragraphs: bool = Field(default=True, description="是否在句末标点后插入空行")

    # ---- 存储与日志 ----
    storage_backend: Literal["memory", "json"] = Field(default="memory", description="会话历史存储后端")
    storage_root: str = Field(default=".storage", description="存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")
    log_to_console: bool = Field(default=False, description="是否同时输出日志到 stderr")

    # ---- HTTP 服务 ----
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="允许的 CORS 来源")
    host: str = Field(default="127.0.0.1", description="监听地址")
    port: int = Field(default=8000, ge=1, le=65535, description="监听端口")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openai_api_key", "perplexity_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @field_validator("primary_provider", "secondary_provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = ProxySettings()
