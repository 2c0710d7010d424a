# src/chatproxy/providers/openai_adapter.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

import openai
from openai import OpenAI

from chatproxy.providers.registry import ProviderRegistry
from chatproxy.core.errors import (
    AISDKError,
    APICallError,
    InvalidResponseDataError,
    LoadAPIKeyError,
    NoContentGeneratedError,
    NoSuchModelError,
)


def _translate_openai_exception(exc: openai.OpenAIError, model: str) -> AISDKError:
    """
    Convert OpenAI SDK exceptions into the chatproxy error family so that the
    web layer only needs to understand one set of error kinds.
    """
    if isinstance(exc, openai.APIResponseValidationError):
        return InvalidResponseDataError(exc.body, message=exc.message, cause=exc)
    if isinstance(exc, openai.APIStatusError):
        status = exc.status_code
        if status == 404 and getattr(exc, "code", None) == "model_not_found":
            return NoSuchModelError(model, message=exc.message, cause=exc)
        return APICallError(
            exc.message,
            status=status,
            url=str(exc.request.url),
            response_body=None if exc.body is None else str(exc.body),
            cause=exc,
        )
    if isinstance(exc, openai.APIConnectionError):
        # Covers APITimeoutError: nothing came back, so there is no status.
        return APICallError(exc.message, url=str(exc.request.url), is_retryable=True, cause=exc)
    return AISDKError(str(exc), cause=exc)


@ProviderRegistry.register("openai")
class OpenAIAdapter:
    """
    Thin adapter:
    - expects 'params' in provider_cfg to be pre-filtered by bootstrap/param policy
    - maps SDK errors to chatproxy.core.errors
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        self.model = model
        client_kwargs: Dict[str, Any] = {"api_key": api_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        if organization:
            client_kwargs["organization"] = organization
        self.client = OpenAI(**client_kwargs)

        self.params = params or {}
        self.timeout = timeout

    @classmethod
    def create(cls, *, model_name: str, provider_cfg: Dict[str, Any], secrets) -> "OpenAIAdapter":
        api_key = secrets.secret("openai", "api_key")
        if not api_key:
            raise LoadAPIKeyError(
                "OpenAI API key is missing. Set OPENAI_API_KEY or store it in the system keyring."
            )

        # These should already be filtered by the YAML policy in bootstrap
        params = (provider_cfg or {}).get("params") or {}
        timeout = (provider_cfg or {}).get("timeout")
        base_url = (provider_cfg or {}).get("base_url")
        organization = (provider_cfg or {}).get("organization")

        return cls(
            model=model_name,
            api_key=api_key,
            params=params,
            timeout=timeout,
            base_url=base_url,
            organization=organization,
        )

    def _build_args(self, messages: List[Dict[str, Any]], *, stream: bool) -> Dict[str, Any]:
        args: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": stream,
            **self.params,  # already effective (pre-filtered) params
        }
        if self.timeout is not None:
            args["timeout"] = self.timeout
        return args

    def chat(self, messages: List[Dict[str, Any]]) -> Dict[str, str]:
        try:
            resp = self.client.chat.completions.create(**self._build_args(messages, stream=False))
        except openai.OpenAIError as e:
            raise _translate_openai_exception(e, self.model) from e

        if not resp.choices:
            raise InvalidResponseDataError(resp, message="Response contained no choices")
        content = resp.choices[0].message.content
        if not content:
            raise NoContentGeneratedError()
        return {"content": content}

    def chat_stream(self, messages: List[Dict[str, Any]]) -> Iterable[str]:
        try:
            stream = self.client.chat.completions.create(**self._build_args(messages, stream=True))
        except openai.OpenAIError as e:
            raise _translate_openai_exception(e, self.model) from e

        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                piece = chunk.choices[0].delta.content
                if piece:
                    yield piece
        except openai.OpenAIError as e:
            raise _translate_openai_exception(e, self.model) from e
