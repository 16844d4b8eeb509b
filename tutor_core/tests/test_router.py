import pytest

from tutor_core.domain.exceptions import (
    ApiError,
    ConfigurationError,
    FailureKind,
    NetworkError,
    RateLimitError,
    RetryExhaustedError,
    TerminalError,
)
from tutor_core.domain.models import (
    Attachment,
    AttachmentKind,
    Message,
    RequestStatus,
    Role,
    Subject,
)
from tutor_core.providers.gemini_client import GeminiClient
from tutor_core.providers.groq_client import GroqClient
from tutor_core.resilience.retry import RetryPolicy
from tutor_core.routing import BACKUP_STATUS, IMAGE_STATUS, Router


class FakeProvider:
    """按顺序返回预设结果（字符串或异常）的 Provider。"""

    def __init__(self, name, model_role, *results, configured=True):
        self.name = name
        self.model_role = model_role
        self._results = list(results)
        self._configured = configured
        self.requests = []

    def ensure_configured(self):
        if not self._configured:
            raise ConfigurationError(code="MISSING_API_KEY", message=f"{self.name.upper()}_API_KEY not set")

    def complete(self, req):
        self.requests.append(req)
        result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if isinstance(result, Exception):
            raise result
        return result


def _groq(*results, **kw):
    return FakeProvider("groq", "assistant", *results, **kw)


def _gemini(*results, **kw):
    return FakeProvider("gemini", "model", *results, **kw)


def _rate_limited(name="groq"):
    return RateLimitError(code="RATE_LIMIT", message=f"{name} rate limit", provider=name)


def _router(primary, vision, sleeps=None):
    sleeps = sleeps if sleeps is not None else []
    return Router(primary, vision, retry_policy=RetryPolicy(max_retries=1, backoff_seconds=3.0, sleep=sleeps.append))


HISTORY = [Message(role=Role.USER, content="hi"), Message(role=Role.ASSISTANT, content="hello")]


def test_route_decisions():
    router = _router(_groq("x"), _gemini("y"))
    image = Attachment(kind=AttachmentKind.IMAGE, content="aGk=")
    text = Attachment(kind=AttachmentKind.TEXT, content="notes")
    assert router.route(image).chain == ("gemini",)
    assert router.route(text).chain == ("groq", "gemini")
    assert router.route(None).chain == ("groq", "gemini")


def test_primary_success():
    primary, vision = _groq("from groq"), _gemini("from gemini")
    router = _router(primary, vision)
    events = []
    router.add_listener(events.append)

    assert router.send_message("2+2?", Subject.MATH, HISTORY) == "from groq"
    assert vision.requests == []
    req = primary.requests[0]
    assert req.model == "reasoning"
    assert "$$" in req.instruction
    assert req.history == tuple(HISTORY)
    assert [e.status for e in events] == [RequestStatus.ATTEMPTING, RequestStatus.SUCCESS]
    assert events[-1].text == "from groq"
    assert router.busy is False
    assert router.status is None
    assert router.last_error is None


def test_text_request_falls_back_to_vision_provider():
    primary = _groq(ApiError(code="API_ERROR", message="groq down", kind=FailureKind.SERVER, provider="groq"))
    vision = _gemini("backup answer")
    router = _router(primary, vision)
    events = []
    router.add_listener(events.append)
    notes = Attachment(kind=AttachmentKind.TEXT, content="x = 1")

    assert router.send_message("explain", Subject.CODING, HISTORY, notes) == "backup answer"
    assert [e.status for e in events] == [
        RequestStatus.ATTEMPTING,
        RequestStatus.FALLBACK,
        RequestStatus.SUCCESS,
    ]
    assert events[1].message == BACKUP_STATUS
    fallback_req = vision.requests[0]
    assert fallback_req.attachment is None
    assert fallback_req.prompt == "explain\n\n[Attached File Content]:\nx = 1"
    assert router.status is None
    assert router.busy is False


def test_fallback_after_primary_retry_exhausted():
    sleeps = []
    primary = _groq(_rate_limited())
    vision = _gemini("backup")
    router = _router(primary, vision, sleeps)
    events = []
    router.add_listener(events.append)

    assert router.send_message("hi", Subject.GENERAL, []) == "backup"
    assert len(primary.requests) == 2
    assert sleeps == [3.0]
    assert [e.status for e in events] == [
        RequestStatus.ATTEMPTING,
        RequestStatus.RETRYING,
        RequestStatus.RETRYING,
        RequestStatus.FALLBACK,
        RequestStatus.SUCCESS,
    ]


def test_fallback_hop_retries_rate_limit():
    sleeps = []
    primary = _groq(NetworkError(code="NETWORK_ERROR", message="offline", provider="groq"))
    vision = _gemini(_rate_limited("gemini"), "second try")
    router = _router(primary, vision, sleeps)

    assert router.send_message("hi", Subject.BIOLOGY, []) == "second try"
    assert len(vision.requests) == 2
    assert sleeps == [3.0]


def test_image_request_uses_vision_only_and_is_terminal():
    primary = _groq("never")
    vision = _gemini(ApiError(code="API_ERROR", message="vision broke", kind=FailureKind.BAD_REQUEST, provider="gemini"))
    router = _router(primary, vision)
    events = []
    router.add_listener(events.append)
    image = Attachment(kind=AttachmentKind.IMAGE, content="aGk=", mime_type="image/png")

    with pytest.raises(TerminalError) as info:
        router.send_message("what is this?", Subject.PHYSICS, HISTORY, image)

    assert primary.requests == []
    assert vision.requests[0].attachment == image
    assert events[0].message == IMAGE_STATUS
    assert events[-1].status is RequestStatus.FAILED
    assert "vision broke" in info.value.message
    assert router.last_error == info.value.message
    assert router.busy is False
    assert router.status is None


def test_all_hops_failing_raises_terminal_error():
    primary = _groq(_rate_limited())
    vision = _gemini(ApiError(code="API_ERROR", message="gemini 500", kind=FailureKind.SERVER, provider="gemini"))
    router = _router(primary, vision)

    with pytest.raises(TerminalError) as info:
        router.send_message("hi", Subject.MATH, [])

    assert "gemini 500" in info.value.message
    assert router.last_error == info.value.message
    assert isinstance(info.value.errors[0], RetryExhaustedError)
    assert isinstance(info.value.errors[1], ApiError)
    assert router.busy is False
    assert router.status is None


def test_missing_credential_fails_before_any_call():
    primary = _groq("x")
    vision = _gemini("y", configured=False)
    router = _router(primary, vision)

    with pytest.raises(ConfigurationError):
        router.send_message("hi", Subject.GENERAL, [])
    assert primary.requests == []
    assert vision.requests == []
    assert router.busy is False


def test_busy_and_status_visible_during_call():
    seen = []
    router = None

    class Observing(FakeProvider):
        def complete(self, req):
            seen.append((router.busy, router.status))
            return "done"

    router = _router(Observing("groq", "assistant", "done"), _gemini("unused"))
    router.send_message("hi", Subject.GENERAL, [])
    assert seen == [(True, "Contacting groq...")]
    assert router.busy is False


def test_sequential_calls_do_not_leak_state():
    primary = _groq(
        ApiError(code="API_ERROR", message="down", kind=FailureKind.SERVER, provider="groq"),
        "fine",
    )
    vision = _gemini(ApiError(code="API_ERROR", message="also down", kind=FailureKind.SERVER, provider="gemini"))
    router = _router(primary, vision)
    with pytest.raises(TerminalError):
        router.send_message("hi", Subject.GENERAL, [])
    assert router.last_error

    events = []
    router.add_listener(events.append)
    assert router.send_message("hi", Subject.GENERAL, []) == "fine"
    assert router.last_error is None
    assert [e.status for e in events] == [RequestStatus.ATTEMPTING, RequestStatus.SUCCESS]


def test_listener_unsubscribe():
    router = _router(_groq("a"), _gemini("b"))
    events = []
    remove = router.add_listener(events.append)
    remove()
    router.send_message("hi", Subject.GENERAL, [])
    assert events == []


def test_distinct_provider_names_required():
    with pytest.raises(ValueError):
        Router(_groq("a"), _groq("b"))


def test_raising_listener_does_not_break_send_message():
    router = _router(_groq("answer"), _gemini("unused"))
    events = []

    def broken(outcome):
        raise RuntimeError("ui widget gone")

    router.add_listener(broken)
    router.add_listener(events.append)

    assert router.send_message("hi", Subject.GENERAL, []) == "answer"
    assert [e.status for e in events] == [RequestStatus.ATTEMPTING, RequestStatus.SUCCESS]
    assert router.busy is False
    assert router.status is None
    assert router.last_error is None


class BothKeys:
    groq_api_key = "gsk_test_key_123"
    gemini_api_key = "AIza_test_key_123"
    http_timeout = 1.0
    groq_base_url = "https://api.groq.com/openai/v1"
    gemini_base_url = "https://generativelanguage.googleapis.com/v1beta"


class HttpResp:
    def __init__(self, data=None, text="", status_code=200):
        self.status_code = status_code
        self._data = data
        self.text = text

    def json(self):
        if self._data is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._data


def _patch_http(monkeypatch, groq_resp, gemini_resp):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, **_):
            return groq_resp if "/chat/completions" in url else gemini_resp

    monkeypatch.setattr("httpx.Client", Client)


def _real_router():
    cfg = BothKeys()
    return Router(GroqClient(cfg), GeminiClient(cfg), retry_policy=RetryPolicy(sleep=lambda s: None))


def test_html_primary_body_falls_back_to_vision_provider(monkeypatch):
    gemini_ok = HttpResp(data={"candidates": [{"content": {"parts": [{"text": "backup answer"}]}}]})
    _patch_http(monkeypatch, HttpResp(text="<html>proxy error</html>"), gemini_ok)
    router = _real_router()
    events = []
    router.add_listener(events.append)

    assert router.send_message("hi", Subject.GENERAL, []) == "backup answer"
    assert [e.status for e in events] == [
        RequestStatus.ATTEMPTING,
        RequestStatus.FALLBACK,
        RequestStatus.SUCCESS,
    ]


def test_malformed_vision_body_for_image_is_terminal(monkeypatch):
    _patch_http(monkeypatch, HttpResp(data={"choices": []}), HttpResp(data=["x"]))
    router = _real_router()
    image = Attachment(kind=AttachmentKind.IMAGE, content="aGk=", mime_type="image/png")

    with pytest.raises(TerminalError) as info:
        router.send_message("what is this?", Subject.GENERAL, [], image)

    assert info.value.errors[0].code == "MALFORMED_RESPONSE"
    assert "malformed" in info.value.message
    assert router.busy is False
