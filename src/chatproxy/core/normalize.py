# src/chatproxy/core/normalize.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .error_kinds import ErrorKind, UpstreamError, inspect_error


@dataclass(frozen=True)
class NormalizedError:
    """
    Stable view of a failure: HTTP status, dotted taxonomy code, and the
    original error's name/message (for logs).
    retry_after_ms is reserved; no rule sets it yet.
    """
    status: int
    code: str
    name: str
    message: str
    retry_after_ms: Optional[int] = None

    def to_payload(self) -> Dict[str, Dict[str, str]]:
        return {"error": {"code": self.code, "name": self.name, "message": self.message}}


# kind -> (status, code) for kinds with a fixed outcome
_FIXED: Dict[ErrorKind, Tuple[int, str]] = {
    ErrorKind.NO_SUCH_MODEL: (400, "model.not_found"),
    ErrorKind.UNSUPPORTED_FUNCTIONALITY: (400, "model.unsupported_functionality"),
    ErrorKind.INVALID_INPUT: (400, "input.invalid"),
    ErrorKind.INVALID_RESPONSE: (502, "provider.invalid_response"),
    ErrorKind.NO_CONTENT: (502, "provider.no_output"),
    ErrorKind.INVALID_TOOL: (400, "tool.invalid"),
    ErrorKind.INVALID_ARGUMENT: (400, "input.invalid"),
    ErrorKind.INVALID_STREAM_PART: (502, "stream.invalid_part"),
    ErrorKind.UNSUPPORTED_MODEL: (400, "model.unsupported"),
    ErrorKind.DOWNLOAD: (502, "provider.network_error"),
    ErrorKind.UNKNOWN: (500, "unknown"),
}

_API_CALL_CODES: Dict[int, str] = {
    401: "auth.unauthorized",
    403: "auth.forbidden",
    404: "provider.not_found",
    409: "provider.conflict",
    422: "provider.unprocessable",
    429: "provider.rate_limited",
}

MISSING_API_KEY_MESSAGE = "Missing or invalid API key"


def api_call_code(status: int) -> str:
    if status in _API_CALL_CODES:
        return _API_CALL_CODES[status]
    if status >= 500:
        return "provider.error"
    return "provider.request_failed"


def _normalize(up: UpstreamError) -> NormalizedError:
    kind = up.kind
    if kind is ErrorKind.LOAD_API_KEY:
        return NormalizedError(401, "auth.no_api_key", up.name, MISSING_API_KEY_MESSAGE)
    if kind is ErrorKind.API_CALL:
        status = up.status if up.status is not None else 502
        return NormalizedError(status, api_call_code(status), up.name, up.message)
    if kind is ErrorKind.RETRY:
        status = up.status if up.status is not None else 503
        return NormalizedError(status, "provider.retry", up.name, up.message)
    if kind is ErrorKind.NETWORK:
        return NormalizedError(502, f"network.{(up.network_code or '').lower()}", up.name, up.message)
    if kind is ErrorKind.SDK_ERROR:
        status = up.status if up.status is not None else 500
        return NormalizedError(status, "ai_sdk.error", up.name, up.message)
    status, code = _FIXED[kind]
    return NormalizedError(status, code, up.name, up.message)


def classify(error: Any) -> NormalizedError:
    """Map any raised value to a NormalizedError. Never raises."""
    return _normalize(inspect_error(error))


FRIENDLY_AUTH = "Authentication failed (check API key)."
FRIENDLY_RATE_LIMITED = "Rate limited. Please wait and try again."
FRIENDLY_INPUT = "Invalid input. Please adjust your request and try again."
FRIENDLY_TOOL = "A tool call failed. Please try again."
FRIENDLY_MODEL = "Model configuration issue. Please try again later."
FRIENDLY_NETWORK = "Network error. Please retry."
FRIENDLY_PROVIDER = "The model provider had an error. Please retry."
FRIENDLY_GENERIC = "Something went wrong. Please try again."

FRIENDLY_MESSAGES = (
    FRIENDLY_AUTH, FRIENDLY_RATE_LIMITED, FRIENDLY_INPUT, FRIENDLY_TOOL,
    FRIENDLY_MODEL, FRIENDLY_NETWORK, FRIENDLY_PROVIDER, FRIENDLY_GENERIC,
)


def friendly_message(error: Any) -> str:
    """Short, non-technical text to append to an already-started stream."""
    code = classify(error).code
    if code.startswith("auth."):
        return FRIENDLY_AUTH
    if code == "provider.rate_limited":
        return FRIENDLY_RATE_LIMITED
    if code.startswith("input."):
        return FRIENDLY_INPUT
    if code.startswith("tool."):
        return FRIENDLY_TOOL
    if code.startswith("model."):
        return FRIENDLY_MODEL
    if code.startswith("network."):
        return FRIENDLY_NETWORK
    if code == "provider.error":
        return FRIENDLY_PROVIDER
    return FRIENDLY_GENERIC
