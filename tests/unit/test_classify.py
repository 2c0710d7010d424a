# tests/unit/test_classify.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatproxy.core import errors as e
from chatproxy.core.normalize import NormalizedError, classify

STATUSES = {400, 401, 403, 404, 409, 422, 429, 500, 502, 503}


class _Obj:
    """Plain object carrying arbitrary attributes (no exception base)."""
    def __init__(self, **kw):
        self.__dict__.update(kw)


# -------- example scenarios --------

def test_missing_api_key_by_name():
    out = classify({"name": "LoadAPIKeyError"})
    assert (out.status, out.code) == (401, "auth.no_api_key")
    assert out.message == "Missing or invalid API key"


def test_api_call_rate_limited_by_name():
    out = classify({"name": "APICallError", "status": 429})
    assert (out.status, out.code) == (429, "provider.rate_limited")


def test_network_code():
    out = classify({"code": "ETIMEDOUT"})
    assert (out.status, out.code) == (502, "network.etimedout")


def test_plain_string_falls_back_to_unknown():
    assert classify("just a string") == NormalizedError(500, "unknown", "Error", "Unexpected error")


# -------- totality --------

@pytest.mark.parametrize("value", [None, 42, {}, [], "", 3.5, object(), {"message": "only a message"},
                                   _Obj(message="boom"), ValueError(), {"name": 7, "message": None}])
def test_any_value_yields_a_well_formed_result(value):
    out = classify(value)
    assert out.status in STATUSES
    assert isinstance(out.code, str) and out.code
    assert isinstance(out.name, str) and isinstance(out.message, str)
    assert out.retry_after_ms is None


def test_message_only_object_keeps_its_message():
    out = classify({"message": "only a message"})
    assert (out.status, out.code, out.name, out.message) == (500, "unknown", "Error", "only a message")


def test_property_that_raises_is_treated_as_absent():
    class Nasty:
        @property
        def name(self):
            raise RuntimeError("no")

        @property
        def status(self):
            raise RuntimeError("no")

    out = classify(Nasty())
    assert (out.status, out.code, out.name) == (500, "unknown", "Error")


def test_classification_is_deterministic():
    value = {"name": "APICallError", "statusCode": 503, "message": "down"}
    assert classify(value) == classify(dict(value))


# -------- typed kinds --------

@pytest.mark.parametrize("exc, status, code", [
    (e.LoadAPIKeyError("no key"), 401, "auth.no_api_key"),
    (e.NoSuchModelError("gpt-x"), 400, "model.not_found"),
    (e.UnsupportedFunctionalityError("images"), 400, "model.unsupported_functionality"),
    (e.TypeValidationError({"a": 1}), 400, "input.invalid"),
    (e.InvalidPromptError([], "empty"), 400, "input.invalid"),
    (e.EmptyResponseBodyError(), 502, "provider.invalid_response"),
    (e.InvalidResponseDataError({"x": 1}), 502, "provider.invalid_response"),
    (e.JSONParseError("{oops"), 502, "provider.invalid_response"),
    (e.NoContentGeneratedError(), 502, "provider.no_output"),
    (e.InvalidMessageRoleError("robot"), 400, "input.invalid"),
    (e.MessageConversionError({}, "bad"), 400, "input.invalid"),
    (e.NoSuchProviderError("acme"), 400, "model.unsupported"),
    (e.AISDKError("misc"), 500, "ai_sdk.error"),
])
def test_structured_errors(exc, status, code):
    out = classify(exc)
    assert (out.status, out.code) == (status, code)
    assert out.name == type(exc).__name__


def test_message_is_preserved_for_typed_errors():
    out = classify(e.NoSuchModelError("gpt-x"))
    assert out.message == "No such model: gpt-x"


# -------- API call sub-mapping --------

@pytest.mark.parametrize("status, code", [
    (401, "auth.unauthorized"),
    (403, "auth.forbidden"),
    (404, "provider.not_found"),
    (409, "provider.conflict"),
    (422, "provider.unprocessable"),
    (429, "provider.rate_limited"),
    (500, "provider.error"),
    (503, "provider.error"),
    (400, "provider.request_failed"),
    (418, "provider.request_failed"),
])
def test_api_call_status_mapping(status, code):
    out = classify(e.APICallError("failed", status=status))
    assert (out.status, out.code) == (status, code)


def test_api_call_without_status_defaults_to_502():
    out = classify(e.APICallError("connection reset"))
    assert (out.status, out.code) == (502, "provider.error")


def test_status_precedence_status_over_status_code():
    out = classify({"name": "APICallError", "status": 500, "statusCode": 404})
    assert out.status == 500


def test_status_code_then_nested_response_status():
    assert classify({"name": "APICallError", "statusCode": 404}).code == "provider.not_found"
    nested = _Obj(name="APICallError", response=_Obj(status=401))
    assert classify(nested).code == "auth.unauthorized"
    assert classify({"name": "APICallError", "response": {"status_code": 403}}).code == "auth.forbidden"


def test_non_integer_status_is_ignored():
    assert classify({"name": "APICallError", "status": "429"}).status == 502
    assert classify({"name": "APICallError", "status": True}).status == 502
    assert classify({"name": "APICallError", "status": 429.5}).status == 502


def test_whole_float_status_counts_as_numeric():
    out = classify({"name": "APICallError", "status": 429.0})
    assert (out.status, out.code) == (429, "provider.rate_limited")
    assert classify({"name": "APICallError", "response": {"status": 503.0}}).status == 503


# -------- name-only kinds --------

@pytest.mark.parametrize("name, status, code", [
    ("InvalidToolInputError", 400, "tool.invalid"),
    ("NoSuchToolError", 400, "tool.invalid"),
    ("ToolCallRepairError", 400, "tool.invalid"),
    ("InvalidArgumentError", 400, "input.invalid"),
    ("InvalidDataContentError", 400, "input.invalid"),
    ("InvalidStreamPartError", 502, "stream.invalid_part"),
    ("UnsupportedModelVersionError", 400, "model.unsupported"),
    ("DownloadError", 502, "provider.network_error"),
    ("MCPClientError", 502, "provider.network_error"),
    ("RetryError", 503, "provider.retry"),
])
def test_named_errors(name, status, code):
    out = classify({"name": name, "message": "m"})
    assert (out.status, out.code, out.name, out.message) == (status, code, name, "m")


def test_retry_error_takes_status_of_last_error():
    err = e.RetryError("gave up", reason="maxRetriesExceeded",
                       errors=[e.APICallError("slow", status=429), e.APICallError("slow", status=429)])
    out = classify(err)
    assert (out.status, out.code) == (429, "provider.retry")


def test_retry_rule_precedes_network_code():
    out = classify({"name": "RetryError", "code": "ECONNRESET"})
    assert out.code == "provider.retry"


def test_sdk_error_with_status():
    out = classify({"name": "AISDKError", "status": 409})
    assert (out.status, out.code) == (409, "ai_sdk.error")


# -------- network --------

@pytest.mark.parametrize("code", ["ETIMEDOUT", "ECONNRESET", "ENOTFOUND"])
def test_network_codes_lowercased(code):
    assert classify(_Obj(code=code)).code == f"network.{code.lower()}"


def test_other_codes_are_not_network():
    assert classify({"code": "EPIPE"}).code == "unknown"


def test_python_network_exceptions():
    import socket
    assert classify(TimeoutError("timed out")).code == "network.etimedout"
    assert classify(ConnectionResetError("reset")).code == "network.econnreset"
    assert classify(socket.gaierror(-2, "Name or service not known")).code == "network.enotfound"


def test_plain_exception_uses_class_name_and_text():
    out = classify(KeyError("missing"))
    assert (out.status, out.code, out.name) == (500, "unknown", "KeyError")
    assert "missing" in out.message
