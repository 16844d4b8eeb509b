"""Gemini Provider 适配器（视觉 Provider，兼作文本备用）。

使用 REST generateContent 端点：
- URL: {base_url}/models/{model}:generateContent
- 认证: x-goog-api-key: <api_key>

历史记录里助手一方的角色名为 "model"；图片附件以 inlineData 片段
附加在最后一轮用户输入上。
"""

from typing import Any, Dict, List

import httpx

from tutor_core.config.settings import settings
from tutor_core.domain.exceptions import ApiError, EmptyResponseError, FailureKind, NetworkError
from tutor_core.domain.models import CompletionRequest
from tutor_core.providers.base import malformed_response, parse_json_body, raise_for_response, require_api_key
from tutor_core.providers.history import adapt_history
from tutor_core.providers.registry import GEMINI_CONFIG, ModelConfig


SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


class GeminiClient:
    """Gemini Provider 客户端实现。"""

    name = "gemini"
    model_role = "model"

    def __init__(self, cfg=settings):
        self._settings = cfg

    def ensure_configured(self) -> None:
        require_api_key(getattr(self._settings, "gemini_api_key", None), "GEMINI_API_KEY", self.name)

    def complete(self, req: CompletionRequest) -> str:
        self.ensure_configured()
        model_cfg = GEMINI_CONFIG.models[req.model]
        payload = self._build_payload(req, model_cfg)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                base = getattr(self._settings, "gemini_base_url", None) or GEMINI_CONFIG.base_url
                resp = client.post(
                    f"{base}/models/{model_cfg.provider_model}:generateContent",
                    json=payload,
                    headers={
                        "x-goog-api-key": self._settings.gemini_api_key,
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=self.name)
        raise_for_response(resp, self.name)
        return self._parse_response(parse_json_body(resp, self.name))

    # ---- 辅助方法 ----

    def _build_payload(self, req: CompletionRequest, model_cfg: ModelConfig) -> dict:
        # Gemini 拒绝空 text 片段，历史中仍为空的轮次直接跳过
        contents: List[Dict[str, Any]] = [
            {"role": turn.role, "parts": [{"text": turn.content}]}
            for turn in adapt_history(req.history, self.model_role)
            if turn.content.strip()
        ]
        contents.append({"role": "user", "parts": self._user_parts(req)})
        return {
            "systemInstruction": {"parts": [{"text": req.instruction}]},
            "contents": contents,
            "generationConfig": {
                "maxOutputTokens": model_cfg.max_tokens,
                "temperature": model_cfg.default_temperature,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_ONLY_HIGH"} for category in SAFETY_CATEGORIES
            ],
        }

    def _user_parts(self, req: CompletionRequest) -> List[Dict[str, Any]]:
        parts: List[Dict[str, Any]] = []
        if req.prompt:
            parts.append({"text": req.prompt})
        attachment = req.attachment
        if attachment is not None and attachment.is_image:
            data = attachment.base64_data()
            if not data.strip():
                raise ApiError(
                    code="EMPTY_IMAGE",
                    message="Image attachment has no base64 content",
                    kind=FailureKind.BAD_REQUEST,
                    provider=self.name,
                )
            parts.append({"inlineData": {"mimeType": attachment.effective_mime_type(), "data": data}})
        return parts

    def _parse_response(self, data: dict) -> str:
        candidates = data.get("candidates") or []
        if not isinstance(candidates, list):
            raise malformed_response(self.name, "'candidates' is not a list")
        if not candidates:
            feedback = data.get("promptFeedback")
            reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            detail = f" (blocked: {reason})" if reason else ""
            raise EmptyResponseError(
                code="EMPTY_RESPONSE", message=f"Empty response from Gemini{detail}", provider=self.name
            )
        first = candidates[0]
        content = (first.get("content") or {}) if isinstance(first, dict) else None
        if not isinstance(content, dict):
            raise malformed_response(self.name, "candidate without a content object")
        parts = content.get("parts") or []
        if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
            raise malformed_response(self.name, "candidate parts are not a list of objects")
        text = "".join(p["text"] for p in parts if isinstance(p.get("text"), str))
        if not text.strip():
            raise EmptyResponseError(code="EMPTY_RESPONSE", message="Empty response from Gemini", provider=self.name)
        return text
