import pytest

from tutor_core.domain.exceptions import ApiError, FailureKind, RateLimitError, RetryExhaustedError
from tutor_core.resilience.retry import RetryPolicy


class FlakyCall:
    """依次抛出给定异常，之后返回 "ok"。"""

    def __init__(self, *errors):
        self._errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return "ok"


def _rate_limited():
    return RateLimitError(code="RATE_LIMIT", message="429", provider="groq")


def test_retry_succeeds_after_one_rate_limit():
    sleeps, statuses = [], []
    policy = RetryPolicy(max_retries=1, backoff_seconds=3.0, sleep=sleeps.append)
    call = FlakyCall(_rate_limited())
    assert policy.run(call, "groq", on_status=statuses.append) == "ok"
    assert call.calls == 2
    assert sleeps == [3.0]
    assert statuses == ["Server busy (High Traffic). Retrying in 3 seconds...", "Retrying now..."]


def test_retry_exhausted_after_two_attempts():
    sleeps = []
    policy = RetryPolicy(max_retries=1, backoff_seconds=3.0, sleep=sleeps.append)
    call = FlakyCall(*[_rate_limited() for _ in range(5)])
    with pytest.raises(RetryExhaustedError) as info:
        policy.run(call, "groq")
    assert call.calls == 2
    assert sleeps == [3.0]
    assert info.value.attempts == 2
    assert info.value.code == "MAX_RETRIES_EXCEEDED"
    assert isinstance(info.value.last_error, RateLimitError)


def test_non_rate_limit_error_propagates_without_wait():
    sleeps, statuses = [], []
    policy = RetryPolicy(max_retries=3, sleep=sleeps.append)
    err = ApiError(code="API_ERROR", message="bad", kind=FailureKind.AUTH, provider="groq")
    call = FlakyCall(err)
    with pytest.raises(ApiError) as info:
        policy.run(call, "groq", on_status=statuses.append)
    assert info.value is err
    assert call.calls == 1
    assert sleeps == []
    assert statuses == []


def test_zero_retries_exhausts_immediately():
    sleeps = []
    policy = RetryPolicy(max_retries=0, sleep=sleeps.append)
    with pytest.raises(RetryExhaustedError):
        policy.run(FlakyCall(_rate_limited()), "gemini")
    assert sleeps == []


def test_from_settings():
    class Cfg:
        max_retries = 2
        retry_backoff_seconds = 0.5

    policy = RetryPolicy.from_settings(Cfg())
    assert policy.max_retries == 2
    assert policy.backoff_seconds == 0.5


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
