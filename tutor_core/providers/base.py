"""Provider 抽象接口。

路由层不直接依赖具体厂商的 HTTP 接口，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 GroqClient、GeminiClient）。
- 负责：将 CompletionRequest 转成具体 API 请求，并把响应 JSON 解析为回答文本。
- 失败时抛出带 FailureKind 的 ProviderError，RetryPolicy 据此判断是否重试。

这样可以在不改路由代码的前提下接入更多厂商，也便于测试时替换为假实现。
"""

from typing import Any, Dict, Optional, Protocol, Tuple

import httpx

from tutor_core.domain.exceptions import ApiError, ConfigurationError, FailureKind, RateLimitError
from tutor_core.domain.models import CompletionRequest


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/路由链。
    - model_role: 该 Provider 历史记录中助手一方的角色名。
    - ensure_configured(): 校验凭证，缺失时抛 ConfigurationError，不发起网络请求。
    - complete(req): 执行一次请求/响应交换，返回非空文本。
    """

    name: str
    model_role: str

    def ensure_configured(self) -> None:
        ...

    def complete(self, req: CompletionRequest) -> str:
        ...


MIN_API_KEY_LENGTH = 10


def require_api_key(value: Optional[str], env_name: str, provider: str) -> str:
    """校验 API Key，缺失或明显过短时抛 ConfigurationError。"""

    if not value:
        raise ConfigurationError(code="MISSING_API_KEY", message=f"{env_name} not set", provider=provider)
    if len(value) < MIN_API_KEY_LENGTH:
        raise ConfigurationError(code="INVALID_API_KEY", message=f"{env_name} seems too short", provider=provider)
    return value


def _error_detail(resp: httpx.Response) -> Tuple[str, str]:
    """从错误响应体中提取 (status 标记, 可读信息)，兼容 OpenAI 与 Google 两种格式。"""

    try:
        data = resp.json()
    except ValueError:
        return "", resp.text
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict):
        return str(err.get("status") or err.get("type") or ""), str(err.get("message") or resp.text)
    return "", resp.text


def raise_for_response(resp: httpx.Response, provider: str) -> None:
    """把非 2xx 响应映射为结构化的 ProviderError。"""

    if resp.status_code < 400:
        return
    marker, detail = _error_detail(resp)
    if resp.status_code == 429 or marker.upper() == "RESOURCE_EXHAUSTED":
        # 限流错误交给 RetryPolicy 做重试/退避
        raise RateLimitError(code="RATE_LIMIT", message=f"{provider} rate limit: {detail}", provider=provider)
    if resp.status_code in (401, 403):
        kind = FailureKind.AUTH
    elif resp.status_code >= 500:
        kind = FailureKind.SERVER
    else:
        kind = FailureKind.BAD_REQUEST
    raise ApiError(
        code="API_ERROR",
        message=f"{provider} HTTP {resp.status_code}: {detail}",
        http_status=resp.status_code,
        kind=kind,
        provider=provider,
    )


def malformed_response(provider: str, detail: str) -> ApiError:
    """2xx 但响应体结构不符合预期时的统一错误（不重试，交给路由层降级）。"""

    return ApiError(
        code="MALFORMED_RESPONSE",
        message=f"{provider} returned a malformed response: {detail}",
        kind=FailureKind.BAD_REQUEST,
        provider=provider,
    )


def parse_json_body(resp: httpx.Response, provider: str) -> Dict[str, Any]:
    """解析成功响应的 JSON 体，要求顶层为对象。

    代理/网关偶尔会以 200 返回 HTML 错误页，这里统一映射为 MALFORMED_RESPONSE。
    """

    try:
        data = resp.json()
    except ValueError:
        raise malformed_response(provider, "body is not JSON")
    if not isinstance(data, dict):
        raise malformed_response(provider, f"expected a JSON object, got {type(data).__name__}")
    return data
