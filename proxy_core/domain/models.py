"""统一的对话与结果数据模型。

本模块定义了代理内部在不同 Provider 之间共享的标准数据结构：

- ChatTurn: 一条对话消息（system/user/assistant），构造后不可变。
- SendOptions: 单次调用对 registry 默认参数的覆盖。
- ProviderResult: FallbackOrchestrator 的输出。
- ClassificationFlags: 启发式分类结果，每条消息重新计算，不持久化。
- ProxyReply: 最终交给 HTTP 层序列化的结果。

所有 Provider 适配器都只依赖这些模型，并负责在各自的 API JSON
与这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from proxy_core.domain.exceptions import ValidationError


# LLM 消息角色类型（与 OpenAI / Perplexity 的 role 字段对应）
Role = Literal["system", "user", "assistant"]
ROLES = ("system", "user", "assistant")

# 回复来源：两个远程槽位，或本地预置文本
Slot = Literal["primary", "secondary"]
ReplySource = Literal["primary", "secondary", "local"]


@dataclass(frozen=True)
class ChatTurn:
    """一条对话消息。

    - role: 消息角色，只允许 system/user/assistant。
    - content: 非空文本。
    """

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValidationError(code="INVALID_ROLE", message=f"Unknown role: {self.role!r}")
        if not isinstance(self.content, str) or not self.content.strip():
            raise ValidationError(code="EMPTY_CONTENT", message=f"Empty content for {self.role} turn")

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


# 按时间顺序排列的消息列表
ConversationHistory = List[ChatTurn]


@dataclass
class SendOptions:
    """对 registry 中模型默认参数的覆盖，None 表示使用默认值。"""

    model: str = "elicit-chat"  # 逻辑模型名，由 registry 映射为真实模型名
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class ExtractedMessage:
    """MessageExtractor 的输出：最新一条用户消息 + 规范化后的消息列表。"""

    text: str
    turns: List[ChatTurn] = field(default_factory=list)
    from_messages: bool = False


@dataclass(frozen=True)
class ClassificationFlags:
    is_acknowledgement: bool = False
    is_likely_incomplete: bool = False
    is_greeting: bool = False
    contains_target_language_markers: bool = False


@dataclass
class ProviderFailure:
    """一次失败的 Provider 调用记录，用于日志与降级观测。"""

    slot: Slot
    provider_name: str
    code: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": self.slot,
            "provider": self.provider_name,
            "code": self.code,
            "message": self.message,
        }


@dataclass
class ProviderResult:
    """一次编排调用的最终结果。

    - text: 回复文本（尚未经过 sanitizer）。
    - provider: primary / secondary / local。
    - used_fallback: 是否离开了首选 Provider。
    - failures: 按调用顺序记录的所有失败。
    """

    text: str
    provider: ReplySource
    used_fallback: bool
    failures: List[ProviderFailure] = field(default_factory=list)


@dataclass
class ProxyReply:
    response: str
    provider: ReplySource
    used_fallback: bool
    conversation_id: Optional[str] = None
    failures: List[ProviderFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "response": self.response,
            "provider": self.provider,
            "usedFallback": self.used_fallback,
        }
        if self.conversation_id:
            body["conversationId"] = self.conversation_id
        return body
