from __future__ import annotations
import time, random
from typing import Iterable, List

from chatproxy.core.errors import APICallError, RetryError
from chatproxy.log import get_logger

_log = get_logger("resilience")


class ResiliencePolicy:
    def __init__(self, max_retries=2, base_delay=0.5, max_delay=8.0, total_timeout=30.0,
                 retry_exceptions=(TimeoutError, ConnectionError)):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.total_timeout = total_timeout
        self.retry_exceptions = tuple(retry_exceptions)

    def compute_backoff(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)) + random.random() * 0.1)


class ResilientProvider:
    """
    Retries retryable provider failures with backoff. A failure that cannot be
    retried on the first attempt surfaces unchanged; once retries have been
    spent, the caller gets a RetryError whose cause is the last failure.
    """

    def __init__(self, inner, policy: ResiliencePolicy):
        self.inner = inner
        self.policy = policy
        self.model = getattr(inner, "model", "unknown")

    def _should_retry(self, exc: Exception) -> bool:
        if isinstance(exc, APICallError):
            return exc.is_retryable
        return isinstance(exc, self.policy.retry_exceptions)

    def _give_up(self, errors: List[Exception], start: float) -> None:
        """Raise if the latest failure ends the attempt loop; return to retry."""
        exc = errors[-1]
        attempt = len(errors)
        if not self._should_retry(exc):
            if attempt == 1:
                raise exc
            raise RetryError(
                f"Failed after {attempt} attempts with non-retryable error: '{exc}'",
                reason="errorNotRetryable", errors=errors,
            ) from exc
        if attempt > self.policy.max_retries:
            raise RetryError(
                f"Failed after {attempt} attempts. Last error: {exc}",
                reason="maxRetriesExceeded", errors=errors,
            ) from exc
        if (time.monotonic() - start) > self.policy.total_timeout:
            raise RetryError(
                f"Gave up after {attempt} attempts ({self.policy.total_timeout}s total). Last error: {exc}",
                reason="totalTimeoutExceeded", errors=errors,
            ) from exc
        _log.warning("Provider attempt %d failed (%s); retrying", attempt, exc)

    def chat(self, messages):
        start = time.monotonic()
        errors: List[Exception] = []
        while True:
            try:
                return self.inner.chat(messages)
            except KeyboardInterrupt:
                raise
            except Exception as e:
                errors.append(e)
                self._give_up(errors, start)
                time.sleep(self.policy.compute_backoff(len(errors)))

    def chat_stream(self, messages) -> Iterable[str]:
        start = time.monotonic()
        errors: List[Exception] = []
        yielded_any = False
        while True:
            try:
                for chunk in self.inner.chat_stream(messages):
                    yielded_any = True
                    yield chunk
                return
            except KeyboardInterrupt:
                raise
            except Exception as e:
                # Only retry before the first chunk; after that the client has output.
                if yielded_any:
                    raise
                errors.append(e)
                self._give_up(errors, start)
                time.sleep(self.policy.compute_backoff(len(errors)))
