"""Provider 抽象接口与 chat/completions 公共实现。

上层 FallbackOrchestrator 不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 OpenAIClient）。
- 负责：将校验后的 ChatTurn 列表转成具体 API 请求，并从响应 JSON
  中取出 choices[0].message.content。

客户端内部不做任何重试，重试与降级全部由编排层负责。
"""

from typing import Any, Dict, List, Optional, Protocol

import httpx

from proxy_core.domain.exceptions import (
    MissingCredential,
    NetworkError,
    ProviderError,
    ProviderHTTPError,
    ProviderMalformedResponse,
    ProviderTimeoutError,
    RateLimitError,
)
from proxy_core.domain.models import ChatTurn, SendOptions
from proxy_core.providers.registry import ModelConfig, ProviderConfig


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - send(history, options): 执行一次非流式对话调用，返回原始文本。
    """

    name: str

    def send(self, history: List[ChatTurn], options: Optional[SendOptions] = None) -> str:
        ...


class ChatCompletionsClient:
    """OpenAI 兼容 chat/completions 端点的公共实现。

    子类只需声明 name、config 以及 settings 中对应的字段名：
    - URL: {base_url}/chat/completions
    - 认证: Authorization: Bearer <api_key>
    """

    name: str = ""
    config: ProviderConfig
    api_key_field: str = ""
    base_url_field: str = ""
    model_field: str = ""

    def __init__(self, settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = settings

    def send(self, history: List[ChatTurn], options: Optional[SendOptions] = None) -> str:
        """执行一次非流式对话调用。

        步骤：
        1. 校验 API Key（在任何网络调用之前）。
        2. 读取模型配置并构造 payload。
        3. 发送单次 POST，把网络错误/超时/非 2xx 转成对应异常。
        4. 解析 choices[0].message.content，缺失或为空视为格式错误。
        """

        api_key = getattr(self._settings, self.api_key_field, None)
        if not api_key:
            raise MissingCredential(self.name)
        options = options or SendOptions()
        model_cfg = self._model_config(options.model)
        payload = self._build_payload(history, model_cfg, options)
        base = getattr(self._settings, self.base_url_field, None) or self.config.base_url
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{base.rstrip('/')}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(self.name, f"{self.name} timed out after {self._settings.http_timeout}s: {e}")
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接被拒绝等
            raise NetworkError(self.name, str(e))
        except httpx.InvalidURL as e:
            # base_url 配置错误，不是 RequestError 的子类
            raise ProviderError(code="INVALID_BASE_URL", message=f"Invalid base URL {base!r}: {e}", provider=self.name)
        if resp.status_code == 429:
            raise RateLimitError(self.name, resp.text)
        if not 200 <= resp.status_code < 300:
            raise ProviderHTTPError(self.name, resp.status_code, resp.text)
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderMalformedResponse(self.name, f"Response is not JSON: {e}")
        return self._parse_response(data)

    def _model_config(self, logical_name: str) -> ModelConfig:
        try:
            model_cfg = self.config.models[logical_name]
        except KeyError:
            raise ProviderError(code="UNKNOWN_MODEL", message=f"Unknown logical model: {logical_name!r}", provider=self.name)
        override = getattr(self._settings, self.model_field, None) if self.model_field else None
        if override:
            return ModelConfig(
                logical_name=model_cfg.logical_name,
                provider_model=override,
                max_tokens=model_cfg.max_tokens,
                default_temperature=model_cfg.default_temperature,
            )
        return model_cfg

    def _build_payload(self, history: List[ChatTurn], model_cfg: ModelConfig, options: SendOptions) -> Dict[str, Any]:
        """将消息列表转成 chat/completions 请求 JSON。"""

        temperature = options.temperature if options.temperature is not None else model_cfg.default_temperature
        return {
            "model": model_cfg.provider_model,
            "messages": [turn.to_payload() for turn in history],
            "max_tokens": options.max_tokens or model_cfg.max_tokens,
            "temperature": temperature,
        }

    def _parse_response(self, data: Any) -> str:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices, list):
            raise ProviderMalformedResponse(self.name, "Response has no choices", raw=data)
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise ProviderMalformedResponse(self.name, "Response has empty message content", raw=data)
        return content
