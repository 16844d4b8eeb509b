import os
from dataclasses import replace

from dotenv import load_dotenv

from tutor_core.config.settings import TutorSettings
from tutor_core.domain.exceptions import BusinessError
from tutor_core.domain.models import CompletionRequest
from tutor_core.providers import create_provider
from tutor_core.providers.registry import FAST, REASONING

# 加载.env文件中的环境变量，再重新构造配置
load_dotenv(os.getenv("TUTOR_ENV_FILE", ".env"))
cfg = TutorSettings()

probe = CompletionRequest(
    instruction="You are a connectivity probe. Answer in one short sentence.",
    history=(),
    prompt="Hello, are you there?",
    model=FAST,
)

results = []
for name in ("groq", "gemini"):
    provider = create_provider(name, cfg)
    for model in (FAST, REASONING):
        try:
            text = provider.complete(replace(probe, model=model))
            results.append(f"{name}/{model}: SUCCESS {text.strip()[:60]!r}")
        except BusinessError as e:
            results.append(f"{name}/{model}: {type(e).__name__} [{e.code}] {e.message}")

print("\n".join(results))
