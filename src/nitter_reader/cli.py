"""Typer CLI for nitter-reader jobs and helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from . import __version__
from .config import (
    RuntimeConfig,
    config_to_dict,
    init_default_config,
    load_runtime_config,
    load_runtime_config_or_default,
    resolve_config_path,
)
from .diagnostics.events import JsonlEventLogger, iter_events
from .diagnostics.redaction import redact_value
from .dispatch import process_job, reject_job
from .errors import (
    ConfigError,
    DiagnosticsError,
    ExtractionInternalError,
    InvalidJobError,
    NitterReaderError,
)
from .executor import JobExecutor
from .extract.html import HtmlNode
from .extract.items import ItemAdapter
from .extract.profile import ProfileAdapter
from .extract.selectors import SelectorPack, resolve_selector_pack
from .logging import configure_logging, get_logger
from .publish import ResultPublisher
from .render.jsonout import item_to_dict, profile_to_dict, render_json, render_jsonl
from .rotation import RotationRegistry

DONE_MARKER = "done."
EXTRACT_FORMATS = ("json", "jsonl")

app = typer.Typer(help="Resilient timeline reader over rotating Nitter mirrors.")
config_app = typer.Typer(help="Config commands.")
app.add_typer(config_app, name="config")

logger = get_logger(__name__)


@app.command("run")
def run(
    ctx: typer.Context,
    payload: str = typer.Option(
        ...,
        "--payload",
        "-p",
        help="Job request as a JSON object, or a path to a file containing one.",
    ),
    path: str | None = typer.Option(
        None, "--config", help="Optional config TOML path (defaults to platform config dir)."
    ),
    events_path: str | None = typer.Option(
        None, "--events", help="Append JSONL debug events for attempts to this file."
    ),
) -> None:
    """Run one job and publish its result envelope to the request's callback URL."""
    succeeded = False
    try:
        job_payload = _load_payload(payload)
        try:
            config = load_runtime_config_or_default(path)
        except ConfigError as exc:
            reject_job(job_payload, exc, publisher=ResultPublisher())
            raise
        _configure(ctx, config)
        selectors = _selectors_for(config)
        event_logger = JsonlEventLogger(events_path) if events_path else None
        result = process_job(
            job_payload,
            config=config,
            executor_factory=lambda cfg, registry: JobExecutor(
                cfg,
                registry,
                selectors=selectors,
                event_logger=event_logger,
            ),
        )
        succeeded = result.success
    except NitterReaderError as exc:
        typer.secho(f"Run failed: {exc}", err=True, fg=typer.colors.RED)
    except Exception as exc:
        logger.exception("run_crashed")
        typer.secho(f"Run failed: {exc}", err=True, fg=typer.colors.RED)
    finally:
        typer.echo(DONE_MARKER)

    if not succeeded:
        raise typer.Exit(1)


@app.command("extract")
def extract(
    ctx: typer.Context,
    html_file: Path = typer.Argument(..., help="Saved mirror profile page (HTML)."),
    path: str | None = typer.Option(
        None, "--config", help="Optional config TOML path (defaults to platform config dir)."
    ),
    limit: int | None = typer.Option(None, "--limit", min=1, help="Keep at most this many items."),
    output_format: str = typer.Option(
        "json", "--format", help="Output format: json (profile, items, counts) or jsonl (one item per line)."
    ),
) -> None:
    """Run the profile and item adapters against a saved page and print JSON."""
    if output_format not in EXTRACT_FORMATS:
        typer.secho(
            f"Extract failed: unsupported output format '{output_format}'. Use one of: json, jsonl.",
            err=True,
            fg=typer.colors.RED,
        )
        raise typer.Exit(2)
    try:
        config = load_runtime_config_or_default(path)
        _configure(ctx, config)
        selectors = _selectors_for(config)
        root = HtmlNode.from_file(html_file)
    except (ConfigError, ExtractionInternalError) as exc:
        typer.secho(f"Extract failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    profile = ProfileAdapter(selectors).extract(root)
    extracted = ItemAdapter(selectors).extract(root)
    items = extracted.items[:limit] if limit is not None else extracted.items
    if output_format == "jsonl":
        typer.echo(render_jsonl(items))
        return
    typer.echo(
        render_json(
            {
                "profile": profile_to_dict(profile),
                "items": [item_to_dict(item) for item in items],
                "raw_count": extracted.raw_count,
                "skipped": extracted.skipped,
                "dropped": extracted.dropped,
                "warnings": list(extracted.warnings),
            }
        )
    )


@app.command("mirrors")
def mirrors(
    path: str | None = typer.Option(
        None, "--config", help="Optional config TOML path (defaults to platform config dir)."
    ),
) -> None:
    """List configured mirrors in rotation order."""
    try:
        config = load_runtime_config_or_default(path)
        registry = RotationRegistry(config.mirrors)
    except ConfigError as exc:
        typer.secho(f"Mirrors failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    for index, endpoint in enumerate(registry.all()):
        typer.echo(f"{index}\t{endpoint.url}")


@app.command("events")
def events(
    events_file: Path = typer.Argument(..., help="JSONL debug-event trail written by `run --events`."),
    job_id: str | None = typer.Option(None, "--job", help="Only show events for this job id."),
) -> None:
    """Print a debug-event trail, one JSON object per line."""
    try:
        for event in iter_events(events_file):
            if job_id is not None and event.job_id != job_id:
                continue
            typer.echo(json.dumps(event.to_dict(), sort_keys=True, default=str))
    except (DiagnosticsError, OSError) as exc:
        typer.secho(f"Events failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc


@config_app.command("init")
def config_init(
    path: str | None = typer.Option(
        None, "--config", help="Optional config TOML path (defaults to platform config dir)."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    try:
        written_path = init_default_config(path, force=force)
    except ConfigError as exc:
        typer.secho(f"Config init failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    typer.echo(f"Wrote default config to {written_path}")


@config_app.command("show")
def config_show(
    path: str | None = typer.Option(
        None, "--config", help="Optional config TOML path (defaults to platform config dir)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Render resolved config as JSON."),
) -> None:
    resolved_path = resolve_config_path(path)
    try:
        config = load_runtime_config(path)
    except ConfigError as exc:
        typer.secho(f"Config show failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    payload = {
        "path": str(resolved_path),
        "config": config_to_dict(config),
    }
    if as_json:
        typer.echo(json.dumps(redact_value(payload), indent=2, sort_keys=True))
        return

    typer.echo(f"Resolved config path: {payload['path']}")
    typer.echo(f"Browser engine: {config.browser.engine}")
    typer.echo(f"Default limit: {config.app.default_limit}")
    typer.echo(f"Mirrors: {len(config.mirrors)}")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show nitter-reader version and exit."),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    ctx.obj = {"debug": debug}
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _configure(ctx: typer.Context | None, config: RuntimeConfig) -> None:
    configure_logging(debug=_resolve_debug(ctx) or config.app.debug)


def _resolve_debug(ctx: typer.Context | None) -> bool:
    if ctx is None or not isinstance(ctx.obj, dict):
        return False
    return bool(ctx.obj.get("debug", False))


def _selectors_for(config: RuntimeConfig) -> SelectorPack:
    resolution = resolve_selector_pack(config.app.selectors_path)
    for warning in resolution.warnings:
        logger.warning("selector_override warning=%s", warning)
    return resolution.selectors


def _load_payload(raw: str) -> Any:
    """Parse inline JSON; fall back to reading the value as a file path."""
    text = raw.strip()
    if not text.startswith(("{", "[")):
        candidate = Path(text).expanduser()
        if candidate.is_file():
            try:
                text = candidate.read_text(encoding="utf-8")
            except OSError as exc:
                raise ConfigError(f"Could not read payload file '{candidate}': {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidJobError(f"Payload is not valid JSON: {exc}") from exc
