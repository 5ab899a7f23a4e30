"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层统一捕获并映射为 HTTP 响应。

Provider 相关错误统一继承 ProviderError，只在 FallbackOrchestrator
边界被捕获并转为降级路径，不会以原始异常的形式返回给调用方。
"""

from typing import Optional


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、status 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ValidationError(BusinessError):
    """入参或配置校验失败。"""


class NoMessageFound(BusinessError):
    """请求中既没有 user 消息，也没有非空的 message 字段。"""

    def __init__(self, message: str = "request carries no user message"):
        super().__init__(code="NO_MESSAGE", message=message)


class ProviderError(BusinessError):
    """Provider 调用失败的基类，携带 provider 名称。"""

    def __init__(self, code: str, message: str, provider: str = "", http_status: int = 502, **extra):
        self.provider = provider
        super().__init__(code=code, message=message, http_status=http_status, provider=provider, **extra)


class MissingCredential(ProviderError):
    """未配置 API Key，在发起网络请求前即失败。"""

    def __init__(self, provider: str):
        super().__init__(
            code="MISSING_API_KEY",
            message=f"{provider.upper()}_API_KEY not set",
            provider=provider,
            http_status=500,
        )


class ProviderHTTPError(ProviderError):
    """第三方 API 返回非 2xx 状态码时抛出。"""

    def __init__(self, provider: str, status: int, body: str, code: str = "API_ERROR"):
        self.status = status
        self.body = body
        super().__init__(code=code, message=body or f"HTTP {status}", provider=provider, status=status)


class RateLimitError(ProviderHTTPError):
    """Provider 限流（429），由编排层负责有限次数的退避重试。"""

    def __init__(self, provider: str, body: str = ""):
        super().__init__(provider=provider, status=429, body=body or f"{provider} rate limit", code="RATE_LIMIT")


class ProviderMalformedResponse(ProviderError):
    """响应不是 JSON，或缺少 choices[0].message.content。"""

    def __init__(self, provider: str, message: str, raw: Optional[object] = None):
        self.raw = raw
        super().__init__(code="MALFORMED_RESPONSE", message=message, provider=provider)


class ProviderTimeoutError(ProviderError):
    """请求超过 http_timeout 仍未返回。"""

    def __init__(self, provider: str, message: str):
        super().__init__(code="TIMEOUT", message=message, provider=provider, http_status=504)


class NetworkError(ProviderError):
    """网络层错误，例如 DNS 失败、连接被拒绝等。"""

    def __init__(self, provider: str, message: str):
        super().__init__(code="NETWORK_ERROR", message=message, provider=provider)
