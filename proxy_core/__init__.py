"""Proxy Core 顶层包。

该包提供 Tangkhul 语料采集聊天的 AI 代理实现，
包括配置加载、领域模型、Provider 适配与降级编排、
请求规范化、回复清理、会话历史存储以及 HTTP 接口。
"""

from proxy_core.api.service import run_proxy_chat

__all__ = ["run_proxy_chat"]
