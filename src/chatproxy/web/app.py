from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ValidationError

from chatproxy.bootstrap import build_provider
from chatproxy.config_loader import load_config
from chatproxy.core.errors import InvalidPromptError, NoContentGeneratedError, TypeValidationError
from chatproxy.core.messages import convert_to_model_messages
from chatproxy.core.normalize import friendly_message
from chatproxy.core.ports import Message, Provider
from chatproxy.log import get_logger
from chatproxy.web.reporting import BufferedResponse, log_ai_error, report_error

_log = get_logger("web")
_END = object()


class ChatRequest(BaseModel):
    messages: List[Dict[str, Any]]


class _ProviderSource:
    """
    Builds the configured provider on first use. A failed build is not
    cached, so a request after fixing the environment (e.g. setting the API
    key) succeeds without a restart.
    """

    def __init__(self, cfg: Dict[str, Any], config_path: Path, fixed: Optional[Provider] = None):
        self._cfg = cfg
        self._config_path = config_path
        self._provider = fixed
        self._lock = threading.Lock()
        self.warnings: List[Dict[str, Any]] = []

    def get(self) -> Provider:
        with self._lock:
            if self._provider is None:
                self._provider, self.warnings = build_provider(self._cfg, self._config_path)
            return self._provider


async def _read_messages(request: Request, system_prompt: Optional[str]) -> List[Message]:
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else None
    except ValueError as e:
        raise InvalidPromptError(None, "request body is not valid JSON") from e
    try:
        req = ChatRequest.model_validate(body)
    except ValidationError as e:
        raise TypeValidationError(
            body, message=f"Invalid request body ({e.error_count()} validation error(s))", cause=e
        ) from e
    messages = convert_to_model_messages(req.messages)
    if system_prompt:
        messages.insert(0, {"role": "system", "content": system_prompt})
    return messages


def _relay(first: str, chunks: Iterator[str]) -> Iterator[str]:
    yield first
    try:
        for chunk in chunks:
            yield chunk
    except Exception as e:
        # Status line is already sent; tell the reader inline.
        log_ai_error(e, _log)
        yield f"\n[error] {friendly_message(e)}"


def create_app(
    config_path: Optional[Path] = None,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    chat_provider: Optional[Provider] = None,
) -> FastAPI:
    """
    Build the FastAPI app. `chat_provider` bypasses config-driven provider
    construction (used by tests and embedding applications).
    """
    if config_path is None and chat_provider is None:
        raise ValueError("create_app needs a config_path or a chat_provider")

    if config_path is not None:
        load_dotenv()
        config_path = Path(config_path)
        cfg = load_config(config_path)
    else:
        cfg = {"model": {"provider": "custom", "name": getattr(chat_provider, "model", "unknown")}}

    if provider:
        cfg["model"]["provider"] = str(provider).lower()
    if model:
        cfg["model"]["name"] = model

    source = _ProviderSource(cfg, config_path or Path("."), fixed=chat_provider)
    system_prompt = (cfg.get("runtime") or {}).get("system_prompt")

    app = FastAPI()
    app.state.cfg = cfg
    app.state.provider_source = source

    @app.get("/api/config")
    def api_config():
        try:
            source.get()
        except Exception as e:
            # Still describe the config; the chat routes report the failure.
            log_ai_error(e, _log)
        return JSONResponse(
            {
                "provider": cfg["model"]["provider"],
                "model": cfg["model"]["name"],
                "warnings": source.warnings,
            }
        )

    @app.post("/api/chat")
    async def api_chat(request: Request) -> Response:
        transport = BufferedResponse()
        try:
            messages = await _read_messages(request, system_prompt)
            chat = await run_in_threadpool(source.get)
            chunks = iter(chat.chat_stream(messages))
            # Pull the first chunk here so early failures still get a real status code.
            first = await run_in_threadpool(next, chunks, _END)
            if first is _END:
                raise NoContentGeneratedError()
        except Exception as e:
            report_error(transport, e, _log)
            return transport.response
        return StreamingResponse(_relay(first, chunks), media_type="text/plain; charset=utf-8")

    @app.post("/api/completion")
    async def api_completion(request: Request) -> Response:
        transport = BufferedResponse()
        try:
            messages = await _read_messages(request, system_prompt)
            chat = await run_in_threadpool(source.get)
            reply = await run_in_threadpool(chat.chat, messages)
        except Exception as e:
            report_error(transport, e, _log)
            return transport.response
        return JSONResponse({"content": reply["content"], "model": chat.model})

    return app


def run(
    *,
    config: Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> None:
    import uvicorn

    app = create_app(config, provider=provider, model=model)
    uvicorn.run(app, host=host, port=port)
