# src/chatproxy/core/error_kinds.py
"""
Adapter that turns an arbitrary raised value into one tagged UpstreamError.

The value may be an exception, a mapping decoded from JSON, some other
object, or None. Nothing here raises.
"""
from __future__ import annotations
import errno
import socket
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Type

import openai

from . import errors as e


class ErrorKind(Enum):
    LOAD_API_KEY = "load_api_key"
    NO_SUCH_MODEL = "no_such_model"
    UNSUPPORTED_FUNCTIONALITY = "unsupported_functionality"
    INVALID_INPUT = "invalid_input"
    INVALID_RESPONSE = "invalid_response"
    NO_CONTENT = "no_content"
    API_CALL = "api_call"
    INVALID_TOOL = "invalid_tool"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_STREAM_PART = "invalid_stream_part"
    UNSUPPORTED_MODEL = "unsupported_model"
    DOWNLOAD = "download"
    RETRY = "retry"
    NETWORK = "network"
    SDK_ERROR = "sdk_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class UpstreamError:
    kind: ErrorKind
    name: str
    message: str
    status: Optional[int] = None
    network_code: Optional[str] = None


DEFAULT_NAME = "Error"
DEFAULT_MESSAGE = "Unexpected error"
NETWORK_CODES = ("ETIMEDOUT", "ECONNRESET", "ENOTFOUND")

# Kinds recognised by type (or by the type's name, for values that crossed a
# serialisation boundary). Order is significant: first match wins.
_TYPED_RULES: Tuple[Tuple[ErrorKind, Tuple[Type[BaseException], ...]], ...] = (
    (ErrorKind.LOAD_API_KEY, (e.LoadAPIKeyError,)),
    (ErrorKind.NO_SUCH_MODEL, (e.NoSuchModelError,)),
    (ErrorKind.UNSUPPORTED_FUNCTIONALITY, (e.UnsupportedFunctionalityError,)),
    (ErrorKind.INVALID_INPUT, (e.TypeValidationError, e.InvalidPromptError)),
    (ErrorKind.INVALID_RESPONSE, (
        e.EmptyResponseBodyError, e.InvalidResponseDataError, e.JSONParseError,
        openai.APIResponseValidationError,
    )),
    (ErrorKind.NO_CONTENT, (e.NoContentGeneratedError,)),
    (ErrorKind.API_CALL, (e.APICallError, openai.APIStatusError, openai.APIConnectionError)),
)

# Kinds only known by their reported name.
_NAMED_RULES: Tuple[Tuple[ErrorKind, Tuple[str, ...]], ...] = (
    (ErrorKind.INVALID_TOOL, ("InvalidToolInputError", "NoSuchToolError", "ToolCallRepairError")),
    (ErrorKind.INVALID_ARGUMENT, (
        "InvalidArgumentError", "InvalidDataContentError", "InvalidMessageRoleError", "MessageConversionError",
    )),
    (ErrorKind.INVALID_STREAM_PART, ("InvalidStreamPartError",)),
    (ErrorKind.UNSUPPORTED_MODEL, ("UnsupportedModelVersionError", "NoSuchProviderError")),
    (ErrorKind.DOWNLOAD, ("DownloadError", "MCPClientError")),
    (ErrorKind.RETRY, ("RetryError",)),
)

_SDK_BASES: Tuple[Type[BaseException], ...] = (e.AISDKError, openai.OpenAIError)
_SDK_NAMES = ("AISDKError", "OpenAIError")

# Kinds whose status comes from the error itself.
_STATUS_KINDS = (ErrorKind.API_CALL, ErrorKind.RETRY, ErrorKind.SDK_ERROR)


# ----- typed extraction helpers -----

def read_field(value: Any, key: str) -> Any:
    if value is None:
        return None
    try:
        if isinstance(value, Mapping):
            return value.get(key)
        return getattr(value, key, None)
    except Exception:
        # Properties may raise; an unreadable field is an absent one.
        return None


def _str_field(value: Any, key: str) -> Optional[str]:
    v = read_field(value, key)
    return v if isinstance(v, str) else None


def _status_field(value: Any, key: str) -> Optional[int]:
    v = read_field(value, key)
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    if isinstance(v, bool) or not isinstance(v, int):
        return None
    return v if 100 <= v <= 599 else None


def read_name(value: Any) -> str:
    if isinstance(value, BaseException) and not isinstance(value, e.AISDKError):
        return type(value).__name__
    return _str_field(value, "name") or DEFAULT_NAME


def read_message(value: Any) -> str:
    msg = _str_field(value, "message")
    if msg is not None:
        return msg
    if isinstance(value, BaseException):
        try:
            text = str(value)
        except Exception:
            text = ""
        if text:
            return text
    return DEFAULT_MESSAGE


def read_status(value: Any) -> Optional[int]:
    """`status`, then `statusCode`/`status_code`, then the nested response's status."""
    for key in ("status", "statusCode", "status_code"):
        status = _status_field(value, key)
        if status is not None:
            return status
    response = read_field(value, "response")
    for key in ("status", "status_code"):
        status = _status_field(response, key)
        if status is not None:
            return status
    return None


def read_network_code(value: Any) -> Optional[str]:
    code = _str_field(value, "code")
    if code in NETWORK_CODES:
        return code
    if isinstance(value, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(value, ConnectionResetError):
        return "ECONNRESET"
    if isinstance(value, TimeoutError):
        return "ETIMEDOUT"
    if isinstance(value, OSError) and isinstance(value.errno, int):
        name = errno.errorcode.get(value.errno)
        if name in NETWORK_CODES:
            return name
    return None


def _match_kind(value: Any, name: str) -> Tuple[ErrorKind, Optional[str]]:
    for kind, types in _TYPED_RULES:
        if isinstance(value, types) or name in (t.__name__ for t in types):
            return kind, None
    for kind, names in _NAMED_RULES:
        if name in names:
            return kind, None
    code = read_network_code(value)
    if code is not None:
        return ErrorKind.NETWORK, code
    if isinstance(value, _SDK_BASES) or name in _SDK_NAMES:
        return ErrorKind.SDK_ERROR, None
    return ErrorKind.UNKNOWN, None


def inspect_error(value: Any) -> UpstreamError:
    name = read_name(value)
    kind, network_code = _match_kind(value, name)
    return UpstreamError(
        kind=kind,
        name=name,
        message=read_message(value),
        status=read_status(value) if kind in _STATUS_KINDS else None,
        network_code=network_code,
    )
