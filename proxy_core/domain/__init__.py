"""领域层模型与协议。

包含：
- models: ChatTurn / ProviderResult / ClassificationFlags 等统一模型。
- conversation: 会话历史存储抽象 HistoryStore 与会话 ID 校验。
- exceptions: 业务异常类型定义。
"""
