"""Perplexity Provider 适配器。

接口风格与 OpenAI 一致，均使用 chat/completions 端点。区别在于：

- Perplexity 对消息顺序校验严格，system 之后必须 user/assistant 交替，
  因此调用前一定要经过 validate_sequence。
- 在线模型会在响应中附带 citations 字段，这里只取正文。
"""

from typing import Any, Dict, List

from proxy_core.config.settings import settings
from proxy_core.domain.models import ChatTurn, SendOptions
from proxy_core.providers.base import ChatCompletionsClient
from proxy_core.providers.registry import PERPLEXITY_CONFIG, ModelConfig


class PerplexityClient(ChatCompletionsClient):
    """Perplexity Provider 客户端实现。"""

    name = "perplexity"
    config = PERPLEXITY_CONFIG
    api_key_field = "perplexity_api_key"
    base_url_field = "perplexity_base_url"
    model_field = "perplexity_model"

    def __init__(self, cfg=settings):
        super().__init__(cfg)

    def _build_payload(self, history: List[ChatTurn], model_cfg: ModelConfig, options: SendOptions) -> Dict[str, Any]:
        payload = super()._build_payload(history, model_cfg, options)
        # 在线检索结果对语料采集没有帮助
        payload["return_related_questions"] = False
        return payload
