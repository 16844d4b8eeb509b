"""统一的对话与路由数据模型。

本模块定义了路由核心在不同 Provider 之间共享的标准数据结构：

- Message / Attachment: 调用方会话记录中的一条消息及其附件（只读传入）。
- ConversationTurn: Provider 侧的一轮对话，每次请求临时重建，不做持久化。
- CompletionRequest: 交给 ProviderClient 的、已准备好的请求。
- RouteDecision / RequestOutcome: 路由决策与调用过程中的状态事件。

所有 Provider 适配器都只依赖这些模型，并在各自的 API JSON 与这些模型之间做转换。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Subject(str, Enum):
    """辅导科目。取值即提示词里展示给模型的名称。"""

    MATH = "Math"
    PHYSICS = "Physics"
    CHEMISTRY = "Chemistry"
    BIOLOGY = "Biology"
    CODING = "Coding"
    HISTORY = "History"
    LITERATURE = "Literature"
    GENERAL = "General"


class AttachmentKind(str, Enum):
    IMAGE = "image"
    TEXT = "text"


@dataclass(frozen=True)
class Attachment:
    """消息附件。

    - kind: IMAGE 时 content 为 base64（可带 data URL 前缀）；TEXT 时为原始文本。
    - mime_type: 图片 MIME 类型，缺省按 image/jpeg 处理。
    - file_name: 仅用于展示与日志。
    """

    kind: AttachmentKind
    content: str
    mime_type: Optional[str] = None
    file_name: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.kind is AttachmentKind.IMAGE

    def base64_data(self) -> str:
        # FileReader 产出的 data URL 形如 "data:image/png;base64,AAAA"
        if self.content.startswith("data:") and "," in self.content:
            return self.content.split(",", 1)[1]
        return self.content

    def effective_mime_type(self) -> str:
        if self.mime_type:
            return self.mime_type
        if self.content.startswith("data:") and ";" in self.content:
            declared = self.content[5 : self.content.index(";")]
            if declared:
                return declared
        return DEFAULT_IMAGE_MIME_TYPE


@dataclass(frozen=True)
class Message:
    """调用方会话中的一条消息，创建后不可变。"""

    role: Role
    content: str
    attachment: Optional[Attachment] = None


@dataclass(frozen=True)
class ConversationTurn:
    """Provider 侧的一轮对话。role 为 "user" 或该 Provider 的模型角色名。"""

    role: str
    content: str


@dataclass(frozen=True)
class CompletionRequest:
    """一次 Provider 调用所需的全部输入。

    - instruction: 系统提示词（非空）。
    - history: 调用方历史消息，由各 Provider 自行通过 HistoryAdapter 转换。
    - prompt: 最新一轮用户输入，文本附件已内联。
    - model: 逻辑模型名，如 "reasoning"（再由 registry 映射为真实模型名）。
    - attachment: 仅图片附件会保留在这里，交给视觉 Provider 处理。
    """

    instruction: str
    history: Tuple[Message, ...]
    prompt: str
    model: str
    attachment: Optional[Attachment] = None


@dataclass(frozen=True)
class RouteDecision:
    chain: Tuple[str, ...]
    reason: str


class RequestStatus(str, Enum):
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    FALLBACK = "fallback"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class RequestOutcome:
    """单次 send_message 过程中推送给监听者的状态事件。"""

    status: RequestStatus
    provider: Optional[str] = None
    message: Optional[str] = None
    text: Optional[str] = None
    error: Optional[str] = None
