"""Groq Provider 适配器（主文本 Provider）。

本模块负责：

1. 接收统一的 CompletionRequest。
2. 将其转换为 Groq 的 OpenAI 兼容 chat/completions 请求格式。
3. 调用 HTTP 接口并把网络/API 异常映射为结构化的 ProviderError。
4. 从响应 JSON 中取出回答文本，空回答视为失败。

Groq 只处理纯文本；图片请求由路由层发往视觉 Provider。
"""

from typing import Any, Dict, List

import httpx

from tutor_core.config.settings import settings
from tutor_core.domain.exceptions import ApiError, EmptyResponseError, FailureKind, NetworkError
from tutor_core.domain.models import CompletionRequest
from tutor_core.providers.base import malformed_response, parse_json_body, raise_for_response, require_api_key
from tutor_core.providers.history import adapt_history
from tutor_core.providers.registry import GROQ_CONFIG, ModelConfig


class GroqClient:
    """Groq 提供方客户端实现。

    - name: Provider 名称（供日志/路由链使用）。
    - complete: 对外统一调用入口，返回回答文本。
    """

    name = "groq"
    model_role = "assistant"

    def __init__(self, cfg=settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = cfg

    def ensure_configured(self) -> None:
        require_api_key(getattr(self._settings, "groq_api_key", None), "GROQ_API_KEY", self.name)

    def complete(self, req: CompletionRequest) -> str:
        """执行一次非流式对话调用。

        步骤：
        1. 读取模型配置（logical model -> provider model）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 解析出第一条候选回答的文本。
        """

        self.ensure_configured()
        if req.attachment is not None and req.attachment.is_image:
            raise ApiError(
                code="UNSUPPORTED_ATTACHMENT",
                message="Groq text models do not accept image attachments",
                kind=FailureKind.BAD_REQUEST,
                provider=self.name,
            )
        model_cfg = GROQ_CONFIG.models[req.model]
        payload = self._build_payload(req, model_cfg)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                base = getattr(self._settings, "groq_base_url", None) or GROQ_CONFIG.base_url
                resp = client.post(
                    f"{base}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._settings.groq_api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=self.name)
        raise_for_response(resp, self.name)
        return self._parse_response(parse_json_body(resp, self.name))

    def _build_payload(self, req: CompletionRequest, model_cfg: ModelConfig) -> dict:
        """将 CompletionRequest 转成 Groq 所需的请求 JSON。"""

        msgs: List[Dict[str, Any]] = [{"role": "system", "content": req.instruction}]
        for turn in adapt_history(req.history, self.model_role):
            msgs.append({"role": turn.role, "content": turn.content})
        msgs.append({"role": "user", "content": req.prompt})
        return {
            "model": model_cfg.provider_model,
            "messages": msgs,
            "temperature": model_cfg.default_temperature,
            "max_tokens": model_cfg.max_tokens,
        }

    def _parse_response(self, data: dict) -> str:
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise malformed_response(self.name, "'choices' is not a list")
        first = choices[0] if choices else {}
        message = (first.get("message") or {}) if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise malformed_response(self.name, "choice without a message object")
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise malformed_response(self.name, "message content is not a string")
        if not content.strip():
            raise EmptyResponseError(code="EMPTY_RESPONSE", message="Empty response from Groq", provider=self.name)
        return content
