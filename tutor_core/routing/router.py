"""Completion router: picks a provider chain, retries and falls back.

Routing rules:
- image attachment -> vision provider only; a failure there is terminal.
- anything else    -> primary text provider, then the vision provider in
  plain-text mode.

Each hop runs through ``RetryPolicy``. Progress is published as
``RequestOutcome`` events to registered listeners and mirrored in the
``busy`` / ``status`` / ``last_error`` properties for the lifetime of the
current call. A Router instance serves one conversation context at a time;
independent conversations should use independent instances.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from tutor_core.domain.exceptions import ConfigurationError, TerminalError
from tutor_core.domain.models import Attachment, Message, RequestOutcome, RouteDecision, Subject
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.providers.base import ProviderClient
from tutor_core.resilience.retry import RetryPolicy
from tutor_core.routing.graph import BACKUP_STATUS, IMAGE_STATUS, build_graph
from tutor_core.routing.state import RouteState

Listener = Callable[[RequestOutcome], None]

__all__ = ["BACKUP_STATUS", "IMAGE_STATUS", "Listener", "Router"]


class Router:
    def __init__(
        self,
        primary: ProviderClient,
        vision: ProviderClient,
        retry_policy: Optional[RetryPolicy] = None,
        listeners: Iterable[Listener] = (),
    ):
        if primary.name == vision.name:
            raise ValueError("primary and vision providers must have distinct names")
        self._primary = primary
        self._vision = vision
        self._providers: Dict[str, ProviderClient] = {primary.name: primary, vision.name: vision}
        self.retry_policy = retry_policy or RetryPolicy()
        self._listeners: List[Listener] = list(listeners)
        self._busy = False
        self._status: Optional[str] = None
        self._last_error: Optional[str] = None
        self._graph = build_graph(self)

    # ---- observable signals ----

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def status(self) -> Optional[str]:
        return self._status

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; the returned callable unsubscribes it."""

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def emit(self, outcome: RequestOutcome) -> None:
        if outcome.message:
            self._status = outcome.message
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:
                # 监听器属于调用方代码，其异常不能打断路由流程
                logger.exception(
                    "router.listener_failed",
                    extra={"extra": {"status": outcome.status.value, "provider": outcome.provider}},
                )

    # ---- routing ----

    def provider(self, name: str) -> ProviderClient:
        return self._providers[name]

    def route(self, attachment: Optional[Attachment] = None) -> RouteDecision:
        if attachment is not None and attachment.is_image:
            return RouteDecision(chain=(self._vision.name,), reason="image attachment requires vision provider")
        return RouteDecision(
            chain=(self._primary.name, self._vision.name),
            reason="text request: primary provider with vision provider fallback",
        )

    def send_message(
        self,
        text: str,
        subject: Subject,
        history: Sequence[Message],
        attachment: Optional[Attachment] = None,
    ) -> str:
        """Send one tutoring turn and return the response text.

        Raises:
            ConfigurationError: a provider in the selected chain has no usable
                credential; raised before any network call.
            TerminalError: every hop in the chain failed; carries the last
                hop's error message.
        """

        self._busy = True
        self._status = None
        self._last_error = None
        try:
            decision = self.route(attachment)
            _log(logging.INFO, "router.route", chain=list(decision.chain), reason=decision.reason)
            for name in decision.chain:
                self._providers[name].ensure_configured()

            initial: RouteState = {
                "text": text,
                "subject": Subject(subject),
                "history": tuple(history),
                "attachment": attachment,
                "chain": list(decision.chain),
            }
            result = self._graph.invoke(initial)
            response = result.get("response")
            if response:
                return response
            message = result.get("last_error") or "All AI services are currently busy."
            raise TerminalError(message=message, errors=result.get("errors"))
        except (ConfigurationError, TerminalError) as exc:
            self._last_error = exc.message
            _log(logging.ERROR, "router.failed", code=exc.code, error=exc.message)
            raise
        finally:
            self._busy = False
            self._status = None


def _log(level: int, message: str, **fields) -> None:
    logger.log(level, message, extra={"extra": fields})
