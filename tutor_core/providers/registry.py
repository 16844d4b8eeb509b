"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：按科目选择的档位，"reasoning" 或 "fast"。
- provider_model：厂商实际提供的模型 ID，例如 "llama-3.3-70b-versatile"。

科目到档位的映射是静态查表，不依赖运行时负载。
"""

from dataclasses import dataclass
from typing import Dict, Mapping

from tutor_core.domain.models import Subject


REASONING = "reasoning"
FAST = "fast"

# 数学/物理/编程使用更强的推理模型，其余科目使用轻量模型
SUBJECT_MODEL_TIER: Mapping[Subject, str] = {
    Subject.MATH: REASONING,
    Subject.PHYSICS: REASONING,
    Subject.CODING: REASONING,
}


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


GROQ_CONFIG = ProviderConfig(
    name="groq",
    base_url="https://api.groq.com/openai/v1",
    models={
        REASONING: ModelConfig(
            logical_name=REASONING,
            provider_model="llama-3.3-70b-versatile",
            max_tokens=1024,
            default_temperature=0.7,
        ),
        FAST: ModelConfig(
            logical_name=FAST,
            provider_model="llama-3.1-8b-instant",
            max_tokens=1024,
            default_temperature=0.7,
        ),
    },
)

GEMINI_CONFIG = ProviderConfig(
    name="gemini",
    base_url="https://generativelanguage.googleapis.com/v1beta",
    models={
        REASONING: ModelConfig(
            logical_name=REASONING,
            provider_model="gemini-2.5-pro",
            max_tokens=1000,
            default_temperature=0.7,
        ),
        FAST: ModelConfig(
            logical_name=FAST,
            provider_model="gemini-2.0-flash",
            max_tokens=1000,
            default_temperature=0.7,
        ),
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "groq": GROQ_CONFIG,
    "gemini": GEMINI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def model_for_subject(subject: Subject) -> str:
    """返回科目对应的逻辑模型名。"""

    return SUBJECT_MODEL_TIER.get(Subject(subject), FAST)
