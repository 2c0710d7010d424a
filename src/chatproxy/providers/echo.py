from __future__ import annotations
from typing import Any, Dict, Iterable, List
import time

from chatproxy.providers.registry import ProviderRegistry
from chatproxy.core.errors import InvalidPromptError


@ProviderRegistry.register("echo")
class EchoProvider:
    """
    Offline provider that answers with the last user message.
    Streaming yields one word at a time with a small delay to simulate tokens.
    """

    def __init__(self, model: str = "echo", token_delay: float = 0.05):
        self.model = model
        self.token_delay = float(token_delay)

    @classmethod
    def create(cls, *, model_name: str, provider_cfg: Dict[str, Any], secrets) -> "EchoProvider":
        return cls(model=model_name, token_delay=(provider_cfg or {}).get("token_delay", 0.05))

    def _reply(self, messages: List[Dict[str, Any]]) -> str:
        for m in reversed(messages):
            if m.get("role") == "user":
                return str(m.get("content", ""))
        raise InvalidPromptError(messages, "no user message to echo")

    def chat(self, messages: List[Dict[str, Any]]) -> Dict[str, str]:
        return {"content": self._reply(messages)}

    def chat_stream(self, messages: List[Dict[str, Any]]) -> Iterable[str]:
        words = self._reply(messages).split(" ")
        last_idx = len(words) - 1
        for i, w in enumerate(words):
            yield w + ("" if i == last_idx else " ")
            if self.token_delay > 0:
                time.sleep(self.token_delay)
