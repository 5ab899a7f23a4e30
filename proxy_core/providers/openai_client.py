"""OpenAI Provider 适配器。

使用公共的 chat/completions 端点，只依赖 model/messages/max_tokens/temperature
四个字段。
"""

from proxy_core.config.settings import settings
from proxy_core.providers.base import ChatCompletionsClient
from proxy_core.providers.registry import OPENAI_CONFIG


class OpenAIClient(ChatCompletionsClient):
    """OpenAI Provider 客户端实现。"""

    name = "openai"
    config = OPENAI_CONFIG
    api_key_field = "openai_api_key"
    base_url_field = "openai_base_url"
    model_field = "openai_model"

    def __init__(self, cfg=settings):
        super().__init__(cfg)
