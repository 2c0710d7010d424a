# src/chatproxy/web/reporting.py
from __future__ import annotations
import json
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse, Response

from chatproxy.core.error_kinds import read_field
from chatproxy.core.normalize import NormalizedError, classify
from chatproxy.core.ports import ResponseTransport
from chatproxy.log import get_logger

_log = get_logger("errors")


class ResponseAlreadySentError(RuntimeError):
    pass


class BufferedResponse:
    """
    ResponseTransport for FastAPI handlers: the handler returns `.response`
    once something has been sent.
    """

    def __init__(self) -> None:
        self.response: Optional[Response] = None

    @property
    def committed(self) -> bool:
        return self.response is not None

    def _commit(self, response: Response) -> None:
        if self.response is not None:
            raise ResponseAlreadySentError("A response has already been sent")
        self.response = response

    def send_json(self, status: int, payload: Dict[str, Any]) -> None:
        self._commit(JSONResponse(payload, status_code=status))

    def send_raw(self, status: int, body: str) -> None:
        self._commit(Response(body, status_code=status, media_type="application/json"))


def _stack_of(error: Any) -> Optional[str]:
    if isinstance(error, BaseException) and error.__traceback__ is not None:
        return "".join(traceback.format_exception(type(error), error, error.__traceback__))
    stack = read_field(error, "stack")
    return stack if isinstance(stack, str) else None


def _cause_of(error: Any) -> Optional[str]:
    cause = error.__cause__ if isinstance(error, BaseException) else None
    if cause is None:
        cause = read_field(error, "cause")
    if cause is None:
        return None
    try:
        return repr(cause)
    except Exception:
        return f"<unrepresentable {type(cause).__name__}>"


def _debug(log: Any, msg: str, *args: Any) -> None:
    try:
        log.debug(msg, *args, exc_info=True)
    except Exception:
        _log.debug(msg, *args, exc_info=True)


def log_ai_error(error: Any, logger: Optional[logging.Logger] = None) -> NormalizedError:
    """Classify `error` and emit one structured ERROR record for it."""
    normalized = classify(error)
    (logger or _log).error(
        "AI Error %s [%s] status=%s: %s",
        normalized.name, normalized.code, normalized.status, normalized.message,
        extra={
            "ai_error": {
                "name": normalized.name,
                "code": normalized.code,
                "status": normalized.status,
                "message": normalized.message,
                "stack": _stack_of(error),
                "cause": _cause_of(error),
            }
        },
    )
    return normalized


def report_error(
    transport: ResponseTransport,
    error: Any,
    logger: Optional[logging.Logger] = None,
) -> NormalizedError:
    """
    Log `error`, then write one JSON error response to `transport`.
    Falls back to a raw write if the JSON write fails; never raises.
    """
    log = logger or _log
    try:
        normalized = log_ai_error(error, log)
    except Exception:
        # The sink itself failed; the response is still written.
        normalized = classify(error)
        _log.debug("Logging sink failed while reporting %s", normalized.code, exc_info=True)
    payload = normalized.to_payload()
    try:
        transport.send_json(normalized.status, payload)
    except Exception:
        try:
            transport.send_raw(normalized.status, json.dumps(payload))
        except Exception:
            _debug(log, "Could not write error response for %s", normalized.code)
    return normalized
