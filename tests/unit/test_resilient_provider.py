# tests/unit/test_resilient_provider.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatproxy.core.errors import APICallError, RetryError
from chatproxy.core.normalize import classify
from chatproxy.resilience.resilient_provider import ResilientProvider, ResiliencePolicy


# -------- helpers --------

class FlakyThenOK:
    def __init__(self, fail_times=2, error=None):
        self.calls = 0
        self.fail_times = fail_times
        self.error = error or (lambda: TimeoutError("boom"))
        self.model = "flaky"

    def chat(self, _):
        self.calls += 1
        if self.calls <= self.fail_times:
            raise self.error()
        return {"content": "ok"}

    def chat_stream(self, _):
        self.calls += 1
        if self.calls <= self.fail_times:
            raise self.error()
        yield "ok"


class MidStreamBoom:
    model = "mid"

    def chat(self, _):
        return {"content": "ok"}

    def chat_stream(self, _):
        yield "he"
        raise TimeoutError("boom mid-stream")


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("chatproxy.resilience.resilient_provider.time.sleep", lambda *_: None)


# -------- tests --------

def test_chat_retries_then_succeeds():
    inner = FlakyThenOK(fail_times=2)
    rp = ResilientProvider(inner, ResiliencePolicy(max_retries=5, base_delay=0))
    assert rp.chat([])["content"] == "ok"
    assert inner.calls == 3


def test_non_retryable_first_failure_is_raised_unchanged():
    class Bad:
        model = "bad"
        def chat(self, _): raise ValueError("nah")
        def chat_stream(self, _): yield "x"
    rp = ResilientProvider(Bad(), ResiliencePolicy(max_retries=3))
    with pytest.raises(ValueError):
        rp.chat([])


def test_non_retryable_api_error_is_not_retried():
    inner = FlakyThenOK(fail_times=5, error=lambda: APICallError("bad key", status=401))
    rp = ResilientProvider(inner, ResiliencePolicy(max_retries=3))
    with pytest.raises(APICallError):
        rp.chat([])
    assert inner.calls == 1


def test_exhausted_retries_raise_retry_error():
    inner = FlakyThenOK(fail_times=10, error=lambda: APICallError("slow down", status=429))
    rp = ResilientProvider(inner, ResiliencePolicy(max_retries=2, base_delay=0))
    with pytest.raises(RetryError) as ei:
        rp.chat([])
    err = ei.value
    assert inner.calls == 3
    assert err.reason == "maxRetriesExceeded"
    assert len(err.errors) == 3
    assert err.last_error is err.errors[-1]
    assert err.__cause__ is err.last_error
    assert err.status == 429
    assert (classify(err).status, classify(err).code) == (429, "provider.retry")


def test_retry_error_without_status_classifies_as_503():
    rp = ResilientProvider(FlakyThenOK(fail_times=10), ResiliencePolicy(max_retries=1, base_delay=0))
    with pytest.raises(RetryError) as ei:
        rp.chat([])
    assert ei.value.status is None
    assert classify(ei.value).status == 503


def test_total_timeout_enforced(monkeypatch):
    # Force elapsed time to exceed total_timeout immediately
    times = iter([0.0, 10.0, 10.0])
    monkeypatch.setattr("chatproxy.resilience.resilient_provider.time.monotonic", lambda: next(times))
    rp = ResilientProvider(FlakyThenOK(fail_times=10), ResiliencePolicy(max_retries=5, base_delay=0, total_timeout=0.1))
    with pytest.raises(RetryError) as ei:
        rp.chat([])
    assert ei.value.reason == "totalTimeoutExceeded"


def test_stream_retries_only_before_first_chunk():
    rp = ResilientProvider(FlakyThenOK(fail_times=1), ResiliencePolicy(max_retries=3, base_delay=0))
    assert list(rp.chat_stream([])) == ["ok"]


def test_stream_midway_failure_bubbles_unchanged():
    rp = ResilientProvider(MidStreamBoom(), ResiliencePolicy())
    g = rp.chat_stream([])
    assert next(g) == "he"
    with pytest.raises(TimeoutError):
        next(g)


def test_keyboard_interrupt_passthrough_chat():
    class Kb:
        model = "kb"
        def chat(self, _): raise KeyboardInterrupt()
        def chat_stream(self, _): yield "x"
    rp = ResilientProvider(Kb(), ResiliencePolicy())
    with pytest.raises(KeyboardInterrupt):
        rp.chat([])


def test_keyboard_interrupt_passthrough_stream():
    class Kb2:
        model = "kb2"
        def chat(self, _): return {"content": "ok"}
        def chat_stream(self, _): raise KeyboardInterrupt()
    rp = ResilientProvider(Kb2(), ResiliencePolicy())
    with pytest.raises(KeyboardInterrupt):
        list(rp.chat_stream([]))
