"""对外 API 服务模块。

提供简化的函数接口供上层应用（UI、语音输入等）调用：
- build_default_router: 按全局配置装配 Groq + Gemini 路由。
- TutorSession: 维护调用方的内存会话历史，一轮成功后再追加用户消息与回答。
"""

from typing import List, Optional

from tutor_core.config.settings import settings
from tutor_core.domain.models import Attachment, Message, Role, Subject
from tutor_core.providers.gemini_client import GeminiClient
from tutor_core.providers.groq_client import GroqClient
from tutor_core.resilience.retry import RetryPolicy
from tutor_core.routing.router import Router
from tutor_core.infrastructure.logging.logger import logger


def build_default_router(cfg=None) -> Router:
    """根据配置创建默认路由（主文本 Groq，视觉/备用 Gemini）。"""

    cfg = cfg or settings
    return Router(
        primary=GroqClient(cfg),
        vision=GeminiClient(cfg),
        retry_policy=RetryPolicy.from_settings(cfg),
    )


class TutorSession:
    """单个会话上下文。

    历史记录由调用方负责持久化；这里只做内存保存，
    失败的一轮不会写入任何消息（全有或全无）。
    """

    def __init__(self, router: Router, subject: Subject = Subject.GENERAL):
        self.router = router
        self.subject = subject
        self._history: List[Message] = []

    @property
    def history(self) -> List[Message]:
        return list(self._history)

    def ask(self, text: str, attachment: Optional[Attachment] = None) -> str:
        """发送一轮提问并返回回答。

        Raises:
            ConfigurationError / TerminalError: 透传自 Router。
        """
        try:
            reply = self.router.send_message(text, self.subject, self._history, attachment)
        except Exception as e:
            logger.error(f"Tutor turn failed: {e}", extra={"extra": {
                "subject": Subject(self.subject).value,
                "error": str(e),
            }})
            raise
        self._history.append(Message(role=Role.USER, content=text, attachment=attachment))
        self._history.append(Message(role=Role.ASSISTANT, content=reply))
        return reply

    def switch_subject(self, subject: Subject) -> None:
        self.subject = subject

    def reset(self) -> None:
        self._history.clear()
