from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .providers.registry import ProviderRegistry
from .providers.param_policy import ParamPolicy
from .resilience.resilient_provider import ResilientProvider, ResiliencePolicy
from .secrets.sources import SecretsResolver
from .log import get_logger

_log = get_logger("bootstrap")


def _policy_path(config_path: Path, provider_name: str, provider_cfg: Dict[str, Any]) -> Path:
    policy_file = provider_cfg.get("policy_file")
    if policy_file:
        p = Path(policy_file)
        return p if p.is_absolute() else config_path.parent / p
    # default location: <config dir>/providers/<name>.yaml
    return config_path.parent / "providers" / f"{provider_name}.yaml"


def build_provider(cfg: Dict[str, Any], config_path: Path) -> Tuple[ResilientProvider, List[Dict[str, Any]]]:
    """
    Composition root for the model side: registry lookup, parameter policy,
    secrets, and the resilience wrapper.
    Returns (provider, warnings). Provider construction failures (missing API
    key, unknown provider, rejected params) propagate as chatproxy errors.
    """
    ProviderRegistry.ensure_imports()

    provider_name = cfg["model"]["provider"]
    model_name = cfg["model"]["name"]
    provider_cfg = dict((cfg.get("providers") or {}).get(provider_name) or {})

    secrets_cfg = cfg.get("secrets") or {}
    resolver = SecretsResolver(method=secrets_cfg.get("method", "env"), mapping=secrets_cfg.get("mapping", {}))

    warnings: List[Dict[str, Any]] = []
    raw_params = dict(provider_cfg.get("params") or {})
    effective_params = raw_params

    policy_path = _policy_path(config_path, provider_name, provider_cfg)
    if policy_path.exists():
        effective_params, _ = ParamPolicy.load(policy_path).evaluate(model_name, raw_params)
        dropped = {k: v for k, v in raw_params.items() if k not in effective_params}
        if dropped:
            try:
                policy_rel = str(policy_path.resolve().relative_to(config_path.resolve().parent))
            except ValueError:
                policy_rel = str(policy_path)
            warnings.append({
                "type": "policy_drop",
                "provider": provider_name,
                "model": model_name,
                "source": f"{config_path.name} → providers.{provider_name}.params",
                "policy": policy_rel,
                "dropped": dropped,
                "message": "Model does not accept these parameters; they were dropped.",
            })
            _log.warning("Dropped params %s for model %s", sorted(dropped), model_name)

    adapter = ProviderRegistry.get(provider_name)
    inner = adapter.create(
        model_name=model_name,
        provider_cfg={**provider_cfg, "params": effective_params},
        secrets=resolver,
    )

    runtime = cfg.get("runtime") or {}
    max_retries = runtime.get("max_retries")
    policy = ResiliencePolicy(max_retries=2 if max_retries is None else max_retries)
    return ResilientProvider(inner, policy=policy), warnings

