from __future__ import annotations
from typing import Protocol, Iterable, List, Dict, Any

Message = Dict[str, Any]


class Provider(Protocol):
    """
    Interface the web layer uses to talk to any LLM backend.
    Implementations raise errors from chatproxy.core.errors.
    """

    # Surface the model name for logging/headers
    model: str

    def chat(self, messages: List[Message]) -> Dict[str, str]:
        """
        Synchronous call. Returns {'content': <assistant_text>}.
        'messages' are OpenAI-style: [{'role': 'system'|'user'|'assistant', 'content': '...'}, ...]
        """
        ...

    def chat_stream(self, messages: List[Message]) -> Iterable[str]:
        """
        Streaming call. Yields text chunks as they arrive.
        """
        ...


class ResponseTransport(Protocol):
    """
    One HTTP response in the making. Each send commits the status line, so a
    transport accepts at most one successful send.
    """

    def send_json(self, status: int, payload: Dict[str, Any]) -> None: ...

    def send_raw(self, status: int, body: str) -> None: ...
