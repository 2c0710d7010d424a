# src/chatproxy/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml


class ConfigError(ValueError):
    pass


def _lookup(d: Dict[str, Any], dotted: str) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise KeyError(dotted)
        cur = cur[k]
    return cur


def _check_type(dotted: str, val: Any, typ: type) -> None:
    if typ is int and (isinstance(val, bool) or not isinstance(val, int)):
        raise ConfigError(f"'{dotted}' must be an integer")
    if typ in (str, bool, dict) and not isinstance(val, typ):
        raise ConfigError(f"'{dotted}' must be a {typ.__name__}")


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    try:
        val = _lookup(d, dotted)
    except KeyError:
        raise ConfigError(f"Missing config key: {dotted}") from None
    _check_type(dotted, val, typ)
    return val


def _optional(d: Dict[str, Any], dotted: str, typ: type) -> None:
    try:
        val = _lookup(d, dotted)
    except KeyError:
        return
    if val is not None:
        _check_type(dotted, val, typ)


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Config is not valid YAML: {path}: {e}") from e
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    _require(raw, "model.provider", str)
    _require(raw, "model.name", str)
    _optional(raw, "providers", dict)
    _optional(raw, "secrets", dict)
    _optional(raw, "runtime.system_prompt", str)
    _optional(raw, "runtime.max_retries", int)
    _optional(raw, "logging.level", str)

    # Provider names are matched case-insensitively by the registry
    raw["model"]["provider"] = raw["model"]["provider"].strip().lower()

    # Leave paths as provided; bootstrap resolves them against the config dir
    return raw
