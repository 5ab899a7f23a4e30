"""HTTP 请求体模型。

请求体在边界处一次性解码：要么是扁平的 message，要么是 messages 列表；
两者都没有、或者字段类型不对，直接 400。
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class TurnIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str = Field(validation_alias=AliasChoices("role", "sender"))
    content: Optional[str] = Field(default="", validation_alias=AliasChoices("content", "text"))


class ProxyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: Optional[str] = None
    messages: Optional[List[TurnIn]] = None
    api_provider: Optional[str] = Field(default=None, alias="apiProvider")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")

    @model_validator(mode="after")
    def _require_message(self) -> "ProxyRequest":
        if self.message is None and self.messages is None:
            raise ValueError("request must carry 'message' or 'messages'")
        return self

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.message is not None:
            payload["message"] = self.message
        if self.messages is not None:
            payload["messages"] = [{"role": t.role, "content": t.content or ""} for t in self.messages]
        if self.api_provider:
            payload["apiProvider"] = self.api_provider
        if self.conversation_id:
            payload["conversationId"] = self.conversation_id
        return payload
