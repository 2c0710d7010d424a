# src/chatproxy/core/messages.py
from __future__ import annotations
from collections.abc import Mapping
from typing import Any, List, Sequence

from .errors import InvalidMessageRoleError, InvalidPromptError, MessageConversionError
from .ports import Message

ROLES = ("system", "user", "assistant")


def _text_of(message: Mapping) -> str:
    content = message.get("content")
    if isinstance(content, str):
        return content
    parts = message.get("parts")
    if not isinstance(parts, list):
        raise MessageConversionError(message, "Message has neither 'content' nor 'parts'")
    texts = [
        p["text"]
        for p in parts
        if isinstance(p, Mapping) and p.get("type") == "text" and isinstance(p.get("text"), str)
    ]
    if not texts:
        raise MessageConversionError(message, "Message has no text parts")
    return "".join(texts)


def convert_to_model_messages(messages: Sequence[Any]) -> List[Message]:
    """
    UI messages ({role, content} or {role, parts: [{type: 'text', text}]})
    -> OpenAI-style {role, content} dicts. Non-text parts are dropped.
    """
    if not messages:
        raise InvalidPromptError(messages, "messages must not be empty")

    out: List[Message] = []
    for m in messages:
        if not isinstance(m, Mapping):
            raise MessageConversionError(m, f"Message must be an object, got {type(m).__name__}")
        role = m.get("role")
        if role not in ROLES:
            raise InvalidMessageRoleError(role)
        out.append({"role": role, "content": _text_of(m)})
    return out
