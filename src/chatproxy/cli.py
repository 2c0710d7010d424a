from __future__ import annotations
from pathlib import Path
from typing import Optional
import typer

from .config_loader import ConfigError, load_config
from .log import configure_logging

app = typer.Typer(add_completion=False, help="Chat proxy for hosted LLM providers.")


@app.callback()
def main() -> None:
    pass


@app.command()
def serve(
    config: Path = typer.Option(Path("config/default.yaml"), help="YAML config file."),
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8000),
    provider: Optional[str] = typer.Option(None, help="Override model.provider."),
    model: Optional[str] = typer.Option(None, help="Override model.name."),
    log_level: Optional[str] = typer.Option(None, help="Override logging.level (default INFO)."),
):
    """Serve the /api/chat and /api/completion endpoints."""
    try:
        cfg = load_config(config)
    except (FileNotFoundError, ConfigError) as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(code=2)

    configure_logging(log_level or (cfg.get("logging") or {}).get("level") or "INFO")

    from .web.app import run

    run(config=config, host=host, port=port, provider=provider, model=model)
