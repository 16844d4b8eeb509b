"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 历史记录到各家对话格式的转换 (history)。
- 提供各厂商的具体实现 (groq_client、gemini_client)。
"""

from typing import Literal

from tutor_core.config.settings import settings
from tutor_core.providers.base import ProviderClient
from tutor_core.providers.groq_client import GroqClient
from tutor_core.providers.gemini_client import GeminiClient

ProviderName = Literal["groq", "gemini"]


def create_provider(name: ProviderName, cfg=None) -> ProviderClient:
    """根据名称创建 Provider 实例，cfg 缺省时使用全局配置（名称不区分大小写）。"""

    provider_name = name.lower()
    cfg = cfg or settings
    if provider_name == "groq":
        return GroqClient(cfg)
    if provider_name == "gemini":
        return GeminiClient(cfg)
    raise KeyError(f"Unknown provider: {name!r}")
