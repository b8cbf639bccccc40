"""Typer CLI entrypoint for newsgate."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .api import build_error_payload, build_news_payload, build_sources_payload
from .cache import CacheSnapshot
from .config import ConfigRepository, ProviderConfig
from .engine import RefreshReport
from .errors import BoundaryError, ConfigError
from .logging_conf import (
    available_provider_logs,
    configure_logging,
    main_log_path,
    provider_log_path,
    tail_log,
)
from .orchestrator import Aggregator
from .scheduler import WarmupScheduler

app = typer.Typer(
    help="newsgate command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
provider_app = typer.Typer(
    name="provider",
    help="Provider commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Configuration commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Log viewing commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    aggregator_factory: Callable[[], Aggregator]


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose)
    return AppState(
        repository=repository,
        aggregator_factory=lambda: Aggregator.from_repository(repository),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _build_aggregator(state: AppState) -> Aggregator:
    try:
        return state.aggregator_factory()
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red")
        raise typer.Exit(code=1) from exc


def _render_records_table(snapshot: CacheSnapshot) -> Table:
    updated = snapshot.last_refreshed_at.isoformat() if snapshot.last_refreshed_at else "never"
    table = Table(
        title=f"News · {snapshot.source} · {len(snapshot)} records · updated {updated}",
        box=box.SIMPLE_HEAD,
    )
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Published", style="green")
    table.add_column("URL", style="dim", overflow="fold")
    for record in snapshot.records:
        table.add_row(
            record.provider,
            record.title,
            record.published_at.isoformat() if record.published_at else "-",
            record.url,
        )
    return table


def _render_providers_table(providers: Sequence[ProviderConfig], default_deadline: float) -> Table:
    table = Table(title=f"Providers · {len(providers)} configured", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Tier", style="magenta")
    table.add_column("Deadline (s)", style="yellow", justify="right")
    table.add_column("Enabled", style="green")
    table.add_column("Sources", justify="right")
    for provider in providers:
        table.add_row(
            provider.provider_id,
            provider.display_name,
            provider.tier.value,
            f"{provider.deadline_seconds or default_deadline:g}",
            "yes" if provider.enabled else "no",
            str(len(provider.candidate_urls)),
        )
    return table


def _render_report_table(report: RefreshReport) -> Table:
    table = Table(
        title=f"Refresh · {report.duration:.2f}s"
        + (" · global deadline reached" if report.deadline_reached else ""),
        box=box.SIMPLE_HEAD,
    )
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Tier", style="magenta")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Records", justify="right")
    table.add_column("Action", style="yellow")
    table.add_column("Error", style="red", overflow="fold")
    for outcome in report.outcomes.values():
        table.add_row(
            outcome.provider,
            outcome.tier.value,
            outcome.status.value if outcome.status else "skipped",
            str(outcome.attempts),
            str(outcome.records),
            outcome.action,
            outcome.error or "",
        )
    return table


app.add_typer(provider_app, name="provider", help="List configured providers")
app.add_typer(config_app, name="config", help="Install or inspect configuration")
app.add_typer(log_app, name="log", help="View log files")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    ctx.obj = build_state(verbose)


@app.command("news", help="Show aggregated news, refreshing the cache first when stale.")
def news(
    ctx: typer.Context,
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Only this provider's records."),
    as_json: bool = typer.Option(False, "--json", help="Print the wire JSON payload."),
) -> None:
    state = _get_state(ctx)
    aggregator = _build_aggregator(state)

    async def _read() -> CacheSnapshot:
        try:
            return await aggregator.get_aggregated_records(provider)
        finally:
            await aggregator.aclose()

    try:
        snapshot = asyncio.run(_read())
    except BoundaryError as exc:
        console.print_json(json.dumps(build_error_payload(exc)))
        raise typer.Exit(code=1) from exc
    if as_json:
        console.print_json(json.dumps(build_news_payload(snapshot)))
        return
    if not snapshot.records:
        console.print("No records available yet.", style="yellow")
        return
    console.print(_render_records_table(snapshot))


@app.command("refresh", help="Run one refresh cycle now and print the per-provider report.")
def refresh(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    aggregator = _build_aggregator(state)

    async def _refresh() -> RefreshReport | None:
        try:
            return await aggregator.refresh_now()
        finally:
            await aggregator.aclose()

    report = asyncio.run(_refresh())
    if report is None:
        console.print("Refresh cycle failed; previous cache contents were kept.", style="red")
        raise typer.Exit(code=1)
    console.print(_render_report_table(report))
    counts = report.counts()
    console.print(
        f"ok={counts['ok']} timed_out={counts['timed_out']} failed={counts['failed']} "
        f"skipped={counts['skipped']} fallback={counts['fallback']}",
        style="green",
    )


@app.command("watch", help="Keep the cache warm by refreshing on an interval (Ctrl+C stops).")
def watch(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(None, "--interval", help="Seconds between refreshes."),
    duration: Optional[float] = typer.Option(None, "--duration", help="Stop after this many seconds."),
) -> None:
    state = _get_state(ctx)
    global_config = state.repository.load_global_config()
    seconds = interval or global_config.warmup_interval_seconds or global_config.cache_ttl_seconds
    if seconds <= 0:
        raise typer.BadParameter("--interval must be > 0")
    aggregator = _build_aggregator(state)

    async def _watch() -> None:
        scheduler = WarmupScheduler()
        scheduler.schedule_warmup(aggregator.refresh_now, seconds)
        scheduler.start()
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            scheduler.shutdown()
            await aggregator.aclose()

    console.print(f"Refreshing every {seconds:g}s.", style="cyan")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("Stopped.", style="dim")


@provider_app.command("list", help="List providers with tier and deadline.")
def provider_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    providers = state.repository.list_providers()
    if not providers:
        console.print("No providers configured.", style="yellow")
        raise typer.Exit(code=0)
    default_deadline = state.repository.load_global_config().default_provider_deadline
    console.print(_render_providers_table(providers, default_deadline))


@provider_app.command("sources", help="Print the sources payload as JSON.")
def provider_sources(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    providers = [provider for provider in state.repository.list_providers() if provider.enabled]
    console.print_json(json.dumps(build_sources_payload(providers)))


@config_app.command("init", help="Install default configuration files into the data directory.")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite existing files."),
) -> None:
    state = _get_state(ctx)
    written = state.repository.install_defaults(force=force)
    if not written:
        console.print("Configuration already present; use --force to overwrite.", style="yellow")
        return
    for path in written:
        console.print(f"Wrote {path}", style="green")


@config_app.command("show", help="Print the effective global configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.repository.load_global_config()
    console.print(yaml.safe_dump(config.model_dump(mode="json"), allow_unicode=True, sort_keys=False))


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    logs = list(available_provider_logs())
    console.print("Log files:", style="cyan")
    if not logs:
        console.print("No provider logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the last lines of a log.")
def log_show(
    provider: Optional[str] = typer.Option(None, "--provider", help="Provider id (main log when omitted)."),
    tail: int = typer.Option(100, "--tail", help="Number of lines to show."),
) -> None:
    path = provider_log_path(provider) if provider else main_log_path()
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    header = f"{provider + ' log' if provider else 'Main log'} · last {len(lines)} lines"
    console.print(header, style="cyan")
    console.print("".join(lines))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
