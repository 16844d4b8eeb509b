"""LangGraph construction and node implementations for the provider chain.

build_context -> attempt(hop 0) -> succeeded
                            -> attempt(hop 1) -> ... -> failed
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from tutor_core.domain.exceptions import ProviderError, RetryExhaustedError
from tutor_core.domain.models import CompletionRequest, RequestOutcome, RequestStatus
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.prompts import build_system_instruction
from tutor_core.providers.history import inline_text_attachment
from tutor_core.providers.registry import model_for_subject
from tutor_core.routing.state import RouteState

if TYPE_CHECKING:
    from tutor_core.routing.router import Router

IMAGE_STATUS = "Analyzing image..."
BACKUP_STATUS = "Traffic high. Switching to backup AI..."


def build_context_node(state: RouteState) -> RouteState:
    subject = state["subject"]
    attachment = state.get("attachment")
    logger.info(
        "build_context_node",
        extra={"extra": {"subject": subject.value, "chain": state["chain"], "history": len(state["history"])}},
    )
    return {
        "instruction": build_system_instruction(subject),
        "prompt": inline_text_attachment(state["text"], attachment),
        "model": model_for_subject(subject),
        "hop": 0,
        "errors": [],
        "last_error": None,
        "response": None,
    }


def attempt_node(state: RouteState, router: "Router") -> RouteState:
    hop = state["hop"]
    name = state["chain"][hop]
    provider = router.provider(name)
    attachment = state.get("attachment")
    image = attachment if attachment is not None and attachment.is_image else None

    if hop > 0:
        router.emit(RequestOutcome(status=RequestStatus.FALLBACK, provider=name, message=BACKUP_STATUS))
    elif image is not None:
        router.emit(RequestOutcome(status=RequestStatus.ATTEMPTING, provider=name, message=IMAGE_STATUS))
    else:
        router.emit(RequestOutcome(status=RequestStatus.ATTEMPTING, provider=name, message=f"Contacting {name}..."))

    req = CompletionRequest(
        instruction=state["instruction"],
        history=state["history"],
        prompt=state["prompt"],
        model=state["model"],
        attachment=image,
    )

    def on_retry_status(message: str) -> None:
        router.emit(RequestOutcome(status=RequestStatus.RETRYING, provider=name, message=message))

    logger.info("attempt_node.start", extra={"extra": {"provider": name, "hop": hop, "model": req.model}})
    try:
        text = router.retry_policy.run(lambda: provider.complete(req), name, on_status=on_retry_status)
    except (ProviderError, RetryExhaustedError) as exc:
        logger.warning(
            "attempt_node.failed",
            extra={"extra": {"provider": name, "hop": hop, "code": exc.code, "error": exc.message}},
        )
        return {"hop": hop + 1, "errors": state["errors"] + [exc], "last_error": exc.message}
    logger.info("attempt_node.success", extra={"extra": {"provider": name, "hop": hop, "chars": len(text)}})
    return {"response": text}


def succeeded_node(state: RouteState, router: "Router") -> RouteState:
    name = state["chain"][state["hop"]]
    router.emit(RequestOutcome(status=RequestStatus.SUCCESS, provider=name, text=state["response"]))
    return {"response": state["response"]}


def failed_node(state: RouteState, router: "Router") -> RouteState:
    logger.error("failed_node", extra={"extra": {"chain": state["chain"], "error": state.get("last_error")}})
    router.emit(RequestOutcome(status=RequestStatus.FAILED, error=state.get("last_error")))
    return {"last_error": state.get("last_error")}


def chain_router(state: RouteState) -> str:
    if state.get("response"):
        return "succeeded"
    if state["hop"] < len(state["chain"]):
        return "attempt"
    return "failed"


def build_graph(router: "Router") -> CompiledStateGraph:
    graph = StateGraph(RouteState)
    graph.add_node("build_context", build_context_node)
    graph.add_node("attempt", lambda s: attempt_node(s, router))
    graph.add_node("succeeded", lambda s: succeeded_node(s, router))
    graph.add_node("failed", lambda s: failed_node(s, router))
    graph.set_entry_point("build_context")
    graph.add_edge("build_context", "attempt")
    graph.add_conditional_edges(
        "attempt", chain_router, {"succeeded": "succeeded", "attempt": "attempt", "failed": "failed"}
    )
    graph.add_edge("succeeded", END)
    graph.add_edge("failed", END)
    return graph.compile()
