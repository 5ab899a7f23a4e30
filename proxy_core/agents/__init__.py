"""代理流水线。

- fallback: 首选 / 备用 / 本地三级降级编排。
- proxy_agent: 单次请求的完整处理流程。
"""
