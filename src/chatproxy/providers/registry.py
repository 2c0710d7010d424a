from __future__ import annotations
from typing import Dict, List, Type, Callable
from importlib import import_module
from importlib.metadata import entry_points

from chatproxy.core.errors import NoSuchProviderError
from chatproxy.log import get_logger

ENTRY_POINT_GROUP = "chatproxy.providers"
_BUILTINS = ("chatproxy.providers.openai_adapter", "chatproxy.providers.echo")

_log = get_logger("providers")


class ProviderRegistry:
    _classes: Dict[str, Type] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type], Type]:
        name = name.lower()
        def deco(klass: Type) -> Type:
            cls._classes[name] = klass
            return klass
        return deco

    @classmethod
    def get(cls, name: str) -> Type:
        key = name.lower()
        if key not in cls._classes:
            raise NoSuchProviderError(name, available=cls.names())
        return cls._classes[key]

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._classes)

    @classmethod
    def ensure_imports(cls) -> None:
        """
        Import built-in adapters and any plugin adapters published under the
        'chatproxy.providers' entry-point group so their @register decorators run.
        Call once at bootstrap before get().
        """
        for module in _BUILTINS:
            import_module(module)
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            _log.debug("Loading provider plugin %s from %s", ep.name, ep.value)
            ep.load()
