"""Command-line interface for netmon."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from netmon.app.report import (
    render_banner,
    render_detailed_stats,
    render_history,
    render_outages,
    render_stats_table,
    render_tick,
)
from netmon.app.runner import ApplicationRunner
from netmon.core.config import (
    ConfigurationError,
    MainConfig,
    apply_overrides,
    load_main_config,
)
from netmon.core.lock import AlreadyRunningError
from netmon.core.statistics import analyze, period_label, window_of
from netmon.core.store import MetricStore, StorageSetupError
from netmon.types import TickSnapshot
from netmon.utils.logging import configure_logging

# Configuration file discovery paths in order of precedence
CONFIG_SEARCH_PATHS = [
    Path("netmon.yaml"),
    Path("netmon.yml"),
    Path("~/.netmon/config.yaml"),
    Path("~/.netmon/config.yml"),
    Path("/etc/netmon/config.yaml"),
]

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

try:
    __version__ = version("netmon")
except PackageNotFoundError:
    __version__ = "unknown"


class InstanceRunningError(click.ClickException):
    """Another monitor holds the data file lock."""

    exit_code = 2


@dataclass(slots=True)
class CliState:
    """Per-invocation state shared by all commands."""

    config: MainConfig
    config_path: Path | None
    log_level: str | None


def discover_config_file() -> Path | None:
    """Return the first existing configuration file, None if there is none."""
    for candidate in CONFIG_SEARCH_PATHS:
        try:
            path = candidate.expanduser()
        except RuntimeError:
            # Home directory cannot be determined
            continue
        if path.is_file():
            return path
    return None


def validate_config_path(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Path | None,
) -> Path | None:
    """Validate configuration file path.

    Raises:
        click.BadParameter: If the path is a directory or not YAML
    """
    if value is None:
        return value

    if value.exists() and value.is_dir():
        raise click.BadParameter("Configuration path must be a file, not a directory")

    if value.suffix.lower() not in {".yaml", ".yml"}:
        raise click.BadParameter("Invalid configuration file extension. Supported extensions: .yaml, .yml")

    return value


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level to uppercase.

    Raises:
        click.BadParameter: If the level is unknown
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()
    if normalized_value not in VALID_LOG_LEVELS:
        raise click.BadParameter(
            f'Invalid log level "{value}". Valid options: {", ".join(sorted(VALID_LOG_LEVELS))}'
        )
    return normalized_value


def _config_for(state: CliState, **overrides: object) -> MainConfig:
    try:
        return apply_overrides(state.config, overrides)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


def _setup_logging(state: CliState, config: MainConfig, *, syslog: bool = False) -> None:
    configure_logging(
        log_level=state.log_level or config.application.log_level,
        enable_syslog=syslog and config.application.syslog_enabled,
        enable_console=True,
        log_file=config.application.log_file,
    )


def _open_store(config: MainConfig) -> MetricStore:
    try:
        store = MetricStore(config.monitoring.data_file, retention=config.monitoring.retention)
    except StorageSetupError as exc:
        raise click.ClickException(str(exc)) from exc
    _ = store.load()
    return store


data_file_option = click.option(
    "--data-file",
    "-d",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Data file path (overrides configuration)",
)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    default=None,
    callback=validate_config_path,
    help="Configuration file (.yaml). If not specified, searches standard locations.",
)
@click.option(
    "--log-level",
    "-l",
    type=str,
    default=None,
    callback=validate_log_level,
    help="Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
)
@click.version_option(version=__version__, prog_name="netmon")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, log_level: str | None) -> None:
    """netmon - Monitor network connection quality.

    Samples latency, packet loss and DNS health on a fixed interval, records
    outages and reports statistics over rolling windows.

    Examples:

        # Start monitoring with defaults
        netmon monitor

        # Show the last 24 hours
        netmon stats

        # Show the last 50 samples
        netmon history -n 50
    """
    config_path = config if config is not None else discover_config_file()
    try:
        main_config = load_main_config(config_path) if config_path is not None else MainConfig()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj = CliState(config=main_config, config_path=config_path, log_level=log_level)


@cli.command()
@click.option("--host", "-h", type=str, default=None, help="Host to ping")
@click.option(
    "--interval",
    "-i",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Monitoring interval in seconds",
)
@data_file_option
@click.option("--once", "-o", is_flag=True, help="Collect a single sample and exit")
@click.option("--no-syslog", is_flag=True, help="Disable syslog even if configured")
@click.option(
    "--stats-every",
    type=click.IntRange(min=0),
    default=10,
    show_default=True,
    help="Print rolling statistics every N ticks (0 disables)",
)
@click.pass_obj
def monitor(
    state: CliState,
    host: str | None,
    interval: float | None,
    data_file: Path | None,
    once: bool,
    no_syslog: bool,
    stats_every: int,
) -> None:
    """Start monitoring the network connection."""
    config = _config_for(state, host=host, interval=interval, data_file=data_file)
    _setup_logging(state, config, syslog=not no_syslog)

    def on_tick(snapshot: TickSnapshot) -> None:
        click.echo(render_tick(snapshot))
        ticks = runner.monitor.ticks
        if once or (stats_every and (ticks == 1 or ticks % stats_every == 0)):
            click.echo()
            click.echo(render_stats_table(snapshot.stats))
            click.echo()

    try:
        runner = ApplicationRunner(config, run_once=once, on_tick=on_tick)
    except StorageSetupError as exc:
        raise click.ClickException(str(exc)) from exc

    monitoring = config.monitoring
    click.echo(render_banner(monitoring.host, monitoring.interval, str(runner.store.data_file)))
    click.echo()

    try:
        runner.run()
    except AlreadyRunningError as exc:
        msg = f"another instance is running (pid {exc.pid}); lock file {exc.lock_path}"
        raise InstanceRunningError(msg) from exc
    except StorageSetupError as exc:
        raise click.ClickException(str(exc)) from exc
    except KeyboardInterrupt:
        pass
    click.echo(click.style("Monitor stopped.", fg="yellow"))


@cli.command()
@click.option(
    "--period",
    "-p",
    type=click.FloatRange(min=0),
    default=24.0,
    show_default=True,
    help="Period in hours (0 for all time)",
)
@data_file_option
@click.pass_obj
def stats(state: CliState, period: float, data_file: Path | None) -> None:
    """Show detailed network statistics for a period."""
    config = _config_for(state, data_file=data_file)
    _setup_logging(state, config)
    store = _open_store(config)

    now = datetime.now(tz=UTC)
    samples = store.query() if period == 0 else window_of(store.query(), period, now=now)
    if not samples:
        click.echo(click.style("No data available for the specified period.", fg="yellow"))
        return

    result = analyze(samples, period_label(period), store.outages(), now=now)
    click.echo(render_detailed_stats(result))


@cli.command()
@click.option(
    "--number",
    "-n",
    type=click.IntRange(min=1),
    default=20,
    show_default=True,
    help="Number of recent samples to show",
)
@data_file_option
@click.pass_obj
def history(state: CliState, number: int, data_file: Path | None) -> None:
    """Show recent monitoring history."""
    config = _config_for(state, data_file=data_file)
    _setup_logging(state, config)
    store = _open_store(config)

    samples = store.latest(number)
    if not samples:
        click.echo(click.style("No monitoring data available.", fg="yellow"))
        return
    click.echo(render_history(samples))


@cli.command()
@click.option(
    "--number",
    "-n",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Number of recent outages to show",
)
@data_file_option
@click.pass_obj
def outages(state: CliState, number: int, data_file: Path | None) -> None:
    """Show recorded outage events."""
    config = _config_for(state, data_file=data_file)
    _setup_logging(state, config)
    store = _open_store(config)

    events = sorted(store.outages(), key=lambda event: event.start_time)[-number:]
    if not events:
        click.echo(click.style("No outages recorded.", fg="green"))
        return
    click.echo(render_outages(events, datetime.now(tz=UTC)))


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@data_file_option
@click.pass_obj
def clear(state: CliState, yes: bool, data_file: Path | None) -> None:
    """Clear all monitoring data."""
    config = _config_for(state, data_file=data_file)
    _setup_logging(state, config)

    if not yes:
        _ = click.confirm(
            f"Delete all samples and outages in {config.monitoring.data_file}?",
            abort=True,
        )

    store = _open_store(config)
    try:
        store.acquire_lock()
    except AlreadyRunningError as exc:
        msg = f"another instance is running (pid {exc.pid}); stop it before clearing"
        raise InstanceRunningError(msg) from exc
    except StorageSetupError as exc:
        raise click.ClickException(str(exc)) from exc
    try:
        cleared = store.clear()
    finally:
        store.release_lock()

    if not cleared:
        raise click.ClickException("Failed to write cleared data files; see log for details")
    click.echo(click.style("Monitoring data cleared.", fg="green"))
