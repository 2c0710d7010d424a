from __future__ import annotations
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple, Optional

import yaml

from chatproxy.core.errors import UnsupportedFunctionalityError

ACTIONS = ("allow", "drop", "reject")


@dataclass
class PolicyRule:
    regex: re.Pattern
    action: str              # "allow" | "drop" | "reject"
    params: List[str]
    message: Optional[str] = None


@dataclass
class ParamPolicy:
    """
    Per-provider table of which request parameters each model family accepts.
    The first rule whose regex matches the model name decides.
    """
    rules: List[PolicyRule]

    @classmethod
    def load(cls, path: Path) -> "ParamPolicy":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        rules: List[PolicyRule] = []
        for r in data.get("rules", []):
            action = str(r["action"]).lower()
            if action not in ACTIONS:
                raise ValueError(f"{path}: unknown policy action '{action}' (expected one of {ACTIONS})")
            rules.append(PolicyRule(
                regex=re.compile(str(r["when_model_matches"])),
                action=action,
                params=[str(p) for p in r.get("params", [])],
                message=r.get("message"),
            ))
        return cls(rules)

    def evaluate(self, model: str, raw_params: Dict[str, Any], *, default_action: str = "allow"
                 ) -> Tuple[Dict[str, Any], List[str]]:
        """
        Returns (effective_params, warnings).
        - allow:  keep everything
        - drop:   remove listed keys, add a warning
        - reject: raise UnsupportedFunctionalityError naming the offending keys
        """
        effective = dict(raw_params or {})
        warnings: List[str] = []

        rule = next((r for r in self.rules if r.regex.search(model)), None)
        action = rule.action if rule else default_action
        listed = [k for k in (rule.params if rule else []) if k in effective]

        if action == "drop" and listed:
            for k in listed:
                effective.pop(k, None)
            warnings.append(rule.message or f"Dropping unsupported params for model '{model}': {sorted(listed)}")

        elif action == "reject" and listed:
            raise UnsupportedFunctionalityError(
                ", ".join(sorted(listed)),
                message=rule.message or f"Unsupported params for model '{model}': {sorted(listed)}",
            )

        return effective, warnings
