"""Tutor Core 顶层包。

该包提供辅导聊天客户端的多 Provider 补全路由核心，
包括配置加载、领域模型、Provider 适配、限流重试、
主备切换路由以及简单的会话封装。
"""

from tutor_core.api.service import TutorSession, build_default_router
from tutor_core.routing import Router

__all__ = ["Router", "TutorSession", "build_default_router"]
