"""State definition for the routing graph."""

from __future__ import annotations

from typing import List, Optional, Tuple, TypedDict

from tutor_core.domain.models import Attachment, Message, Subject


class RouteState(TypedDict, total=False):
    """State shared across routing nodes for one ``send_message`` call."""

    text: str
    subject: Subject
    history: Tuple[Message, ...]
    attachment: Optional[Attachment]
    chain: List[str]
    instruction: str
    prompt: str
    model: str
    hop: int
    errors: List[BaseException]
    last_error: Optional[str]
    response: Optional[str]
