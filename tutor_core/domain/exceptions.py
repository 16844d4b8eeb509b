"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError。
Router 对外只暴露 ConfigurationError 与 TerminalError，
其余 Provider 层错误在路由内部消化，仅体现在状态文案与日志中。
"""

from enum import Enum
from typing import List, Optional


class FailureKind(str, Enum):
    """Provider 调用失败的结构化分类，RetryPolicy 只依据此字段决定是否重试。"""

    RATE_LIMITED = "rate_limited"
    AUTH = "auth"
    BAD_REQUEST = "bad_request"
    SERVER = "server"
    NETWORK = "network"
    EMPTY_RESPONSE = "empty_response"


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """凭证缺失或无效。在任何网络请求之前抛出，从不重试。"""


class ProviderError(BusinessError):
    """Provider 调用失败（非配置类）。

    kind 为结构化失败类型，provider 为出错的 Provider 名称。
    """

    default_kind = FailureKind.SERVER

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int = 502,
        kind: Optional[FailureKind] = None,
        provider: Optional[str] = None,
        **extra,
    ):
        super().__init__(code, message, http_status=http_status, **extra)
        self.kind = kind or self.default_kind
        self.provider = provider

    @property
    def retryable(self) -> bool:
        return self.kind is FailureKind.RATE_LIMITED


class NetworkError(ProviderError):
    """网络层错误，例如连接失败、超时等。"""

    default_kind = FailureKind.NETWORK


class ApiError(ProviderError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(ProviderError):
    """Provider 限流错误，由 RetryPolicy 负责重试/退避。"""

    default_kind = FailureKind.RATE_LIMITED

    def __init__(self, code: str, message: str, http_status: int = 429, **extra):
        extra.pop("kind", None)
        super().__init__(code, message, http_status=http_status, kind=FailureKind.RATE_LIMITED, **extra)


class EmptyResponseError(ProviderError):
    """Provider 返回成功状态但没有任何文本。"""

    default_kind = FailureKind.EMPTY_RESPONSE


class RetryExhaustedError(BusinessError):
    """限流在重试预算内始终未恢复。

    与普通 ProviderError 区分开，便于日志诊断；对 fallback 而言两者等价。
    """

    def __init__(self, provider: str, attempts: int, last_error: Optional[BaseException] = None):
        detail = getattr(last_error, "message", None) or str(last_error or "rate limited")
        super().__init__(
            code="MAX_RETRIES_EXCEEDED",
            message=f"Max retries exceeded on {provider} after {attempts} attempts: {detail}",
            http_status=429,
            provider=provider,
        )
        self.provider = provider
        self.attempts = attempts
        self.last_error = last_error


class TerminalError(BusinessError):
    """链路上所有 Provider 均失败时抛给调用方。

    message 取最后一跳的错误信息，errors 保存每一跳的原始异常。
    """

    def __init__(self, message: str, errors: Optional[List[BaseException]] = None):
        super().__init__(code="ALL_PROVIDERS_FAILED", message=message, http_status=503)
        self.errors = list(errors or [])
