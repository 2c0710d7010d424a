from __future__ import annotations
from typing import Any, List, Optional


class AISDKError(Exception):
    """Base class for failures raised by the model-calling layer."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.name = type(self).__name__
        self.message = message
        self.cause = cause


class LoadAPIKeyError(AISDKError):
    pass


class NoSuchModelError(AISDKError):
    def __init__(self, model_id: str, message: Optional[str] = None, **kw: Any):
        super().__init__(message or f"No such model: {model_id}", **kw)
        self.model_id = model_id


class UnsupportedFunctionalityError(AISDKError):
    def __init__(self, functionality: str, message: Optional[str] = None, **kw: Any):
        super().__init__(message or f"'{functionality}' functionality not supported.", **kw)
        self.functionality = functionality


class TypeValidationError(AISDKError):
    def __init__(self, value: Any, message: Optional[str] = None, **kw: Any):
        super().__init__(message or "Type validation failed", **kw)
        self.value = value


class InvalidPromptError(AISDKError):
    def __init__(self, prompt: Any, message: str, **kw: Any):
        super().__init__(f"Invalid prompt: {message}", **kw)
        self.prompt = prompt


class EmptyResponseBodyError(AISDKError):
    def __init__(self, message: str = "Empty response body", **kw: Any):
        super().__init__(message, **kw)


class InvalidResponseDataError(AISDKError):
    def __init__(self, data: Any, message: Optional[str] = None, **kw: Any):
        super().__init__(message or f"Invalid response data: {data!r}", **kw)
        self.data = data


class JSONParseError(AISDKError):
    def __init__(self, text: str, **kw: Any):
        super().__init__(f"JSON parsing failed: Text: {text}", **kw)
        self.text = text


class NoContentGeneratedError(AISDKError):
    def __init__(self, message: str = "No content generated.", **kw: Any):
        super().__init__(message, **kw)


class APICallError(AISDKError):
    """
    A request to the provider failed. `status` is None when no HTTP response
    was received (connection reset, timeout).
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        url: Optional[str] = None,
        response_body: Optional[str] = None,
        is_retryable: Optional[bool] = None,
        **kw: Any,
    ):
        super().__init__(message, **kw)
        self.status = status
        self.url = url
        self.response_body = response_body
        if is_retryable is None:
            is_retryable = status is None or status in (408, 409, 429) or status >= 500
        self.is_retryable = is_retryable


class InvalidMessageRoleError(AISDKError):
    def __init__(self, role: Any, **kw: Any):
        super().__init__(
            f"Invalid message role: {role!r}. Must be one of: 'system', 'user', 'assistant'.", **kw
        )
        self.role = role


class MessageConversionError(AISDKError):
    def __init__(self, original_message: Any, message: str, **kw: Any):
        super().__init__(message, **kw)
        self.original_message = original_message


class NoSuchProviderError(AISDKError):
    def __init__(self, provider_id: str, available: Optional[List[str]] = None, **kw: Any):
        available = available or []
        super().__init__(
            f"No such provider: {provider_id} (available: {', '.join(available) or 'none'})", **kw
        )
        self.provider_id = provider_id
        self.available = available


class RetryError(AISDKError):
    """
    Raised once retries are exhausted. `reason` is one of
    'maxRetriesExceeded', 'errorNotRetryable', 'totalTimeoutExceeded'.
    """

    def __init__(self, message: str, *, reason: str, errors: List[BaseException]):
        last = errors[-1] if errors else None
        super().__init__(message, cause=last)
        self.reason = reason
        self.errors = list(errors)
        self.last_error = last
        status = getattr(last, "status", None)
        self.status: Optional[int] = status if isinstance(status, int) and not isinstance(status, bool) else None
