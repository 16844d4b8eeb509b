"""会话历史适配。

把调用方按时间顺序排列的 Message 列表转换为 Provider 的 ConversationTurn：
- 保持顺序，不丢弃、不重排；
- USER -> "user"，ASSISTANT -> 目标 Provider 的模型角色名（Groq 为 "assistant"，Gemini 为 "model"）；
- 文本附件以分隔标记追加到正文，保证历史可以纯文本表示；
- 只有图片、没有文字的一轮用 IMAGE_PLACEHOLDER 占位，避免产生空文本。
"""

from typing import List, Optional, Sequence

from tutor_core.domain.models import Attachment, AttachmentKind, ConversationTurn, Message, Role


HISTORY_FILE_MARKER = "\n[File]: "
PROMPT_FILE_MARKER = "\n\n[Attached File Content]:\n"
IMAGE_PLACEHOLDER = "[Image]"


def adapt_history(history: Sequence[Message], model_role: str) -> List[ConversationTurn]:
    turns: List[ConversationTurn] = []
    for msg in history:
        role = "user" if msg.role is Role.USER else model_role
        content = msg.content
        if msg.attachment is not None and msg.attachment.kind is AttachmentKind.TEXT:
            content = f"{content}{HISTORY_FILE_MARKER}{msg.attachment.content}"
        elif msg.attachment is not None and msg.attachment.is_image and not content.strip():
            content = IMAGE_PLACEHOLDER
        turns.append(ConversationTurn(role=role, content=content))
    return turns


def inline_text_attachment(text: str, attachment: Optional[Attachment]) -> str:
    """文本附件内联到最新一轮用户输入；图片附件不在这里处理。"""

    if attachment is not None and attachment.kind is AttachmentKind.TEXT:
        return f"{text}{PROMPT_FILE_MARKER}{attachment.content}"
    return text
