"""Plain-text rendering of samples, outages and statistics for the CLI.

Every function returns a string; the commands decide where it goes. Colors
are applied with ``click.style`` and disappear automatically when output is
not a terminal.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Final

import click

from netmon.types import NetworkStats, OutageEvent, OutageType, Sample, TickSnapshot
from netmon.utils.formatting import (
    Grade,
    format_duration,
    format_latency,
    format_percent,
    format_timestamp,
    grade_latency,
    grade_packet_loss,
    grade_rate,
)

_GRADE_COLORS: Final[Mapping[Grade, str]] = {
    Grade.NONE: "bright_black",
    Grade.GOOD: "green",
    Grade.DEGRADED: "yellow",
    Grade.BAD: "red",
}


def _graded(text: str, grade: Grade) -> str:
    return click.style(text, fg=_GRADE_COLORS[grade])


def _heading(text: str) -> str:
    return click.style(text, fg="cyan", bold=True)


def _row(cells: Sequence[str], widths: Sequence[int]) -> str:
    # Pad on the unstyled width so ANSI codes do not shift columns
    padded = [
        cell + " " * max(0, width - len(click.unstyle(cell)))
        for cell, width in zip(cells, widths, strict=True)
    ]
    return "  ".join(padded).rstrip()


def _table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(title) for title in header]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(click.unstyle(cell)))
    lines = [_row([click.style(title, bold=True) for title in header], widths)]
    lines.append(_row(["-" * width for width in widths], widths))
    lines.extend(_row(row, widths) for row in rows)
    return "\n".join(lines)


def latency_cell(ms: float) -> str:
    return _graded(format_latency(ms), grade_latency(ms))


def loss_cell(loss: float) -> str:
    return _graded(format_percent(loss), grade_packet_loss(loss))


def rate_cell(rate: float) -> str:
    return _graded(format_percent(rate), grade_rate(rate))


def dns_cell(sample: Sample) -> str:
    if sample.dns.success:
        return _graded(f"ok {sample.dns.response_time_ms:.0f}ms", Grade.GOOD)
    return _graded("failed", Grade.BAD)


def outage_type_label(event: OutageEvent) -> str:
    return "complete" if event.type is OutageType.CONNECTIVITY else "partial"


def render_banner(host: str, interval: float, data_file: str) -> str:
    """Startup lines printed by ``netmon monitor``."""
    return "\n".join([
        click.style("Starting network monitor...", fg="green", bold=True),
        click.style(f"Monitoring {host} every {interval:g}s", fg="bright_black"),
        click.style(f"Data stored in: {data_file}", fg="bright_black"),
        click.style("Press Ctrl+C to stop", fg="bright_black"),
    ])


def render_tick(snapshot: TickSnapshot) -> str:
    """One status line per tick, plus a line for any outage transition."""
    sample = snapshot.sample
    status = _graded("DOWN", Grade.BAD) if sample.is_outage else _graded("UP", Grade.GOOD)
    line = (
        f"[{format_timestamp(sample.timestamp)}] {status} "
        f"{sample.ping.host}  latency {latency_cell(sample.ping.avg_ms)}  "
        f"loss {loss_cell(sample.ping.packet_loss_percent)}  dns {dns_cell(sample)}"
    )
    lines = [line]

    transition = snapshot.transition
    if transition is not None:
        if transition.is_open:
            lines.append(
                click.style(
                    f"  Outage detected ({outage_type_label(transition)}), id {transition.id}",
                    fg="red",
                    bold=True,
                )
            )
        else:
            duration = format_duration(transition.duration or 0.0)
            lines.append(click.style(f"  Connectivity restored after {duration}", fg="green", bold=True))
    return "\n".join(lines)


def render_stats_table(stats: Mapping[str, NetworkStats]) -> str:
    """Compact multi-period summary."""
    rows = [
        [
            label,
            rate_cell(item.ping_stats.uptime) if item.samples else "-",
            latency_cell(item.ping_stats.avg_latency),
            loss_cell(item.ping_stats.avg_packet_loss) if item.samples else "-",
            rate_cell(item.dns_stats.success_rate) if item.samples else "-",
            str(item.outage_stats.total_outages),
            str(item.samples),
        ]
        for label, item in stats.items()
    ]
    header = ["Period", "Uptime", "Avg Latency", "Packet Loss", "DNS Success", "Outages", "Samples"]
    return "\n".join([_heading("Network Statistics"), _table(header, rows)])


def render_detailed_stats(stats: NetworkStats) -> str:
    """Full statistics for a single period."""
    ping = stats.ping_stats
    dns = stats.dns_stats
    outages = stats.outage_stats
    lines = [
        _heading(f"Detailed Statistics - {stats.period}"),
        f"Time Range:            {format_timestamp(stats.start_time)} - {format_timestamp(stats.end_time)}",
        f"Total Samples:         {stats.samples}",
        "",
        click.style("Ping Statistics", bold=True, underline=True),
        f"Average Latency:       {latency_cell(ping.avg_latency)}",
        f"Min Latency:           {latency_cell(ping.min_latency)}",
        f"Max Latency:           {latency_cell(ping.max_latency)}",
        f"Average Packet Loss:   {loss_cell(ping.avg_packet_loss)}",
        f"Uptime:                {rate_cell(ping.uptime)}",
        "",
        click.style("DNS Statistics", bold=True, underline=True),
        f"Average Response Time: {dns.avg_response_time:g}ms",
        f"Success Rate:          {rate_cell(dns.success_rate)}",
        "",
        click.style("Outages", bold=True, underline=True),
        f"Total Outages:         {outages.total_outages}",
        f"Total Downtime:        {format_duration(outages.total_duration)}",
        f"Average Duration:      {format_duration(outages.avg_duration)}",
        f"Longest Outage:        {format_duration(outages.longest_outage)}",
        f"Time in Outage:        {format_percent(outages.outage_percentage)}",
    ]
    return "\n".join(lines)


def render_history(samples: Sequence[Sample]) -> str:
    """Most recent samples first."""
    rows = [
        [
            format_timestamp(sample.timestamp),
            latency_cell(sample.ping.avg_ms),
            loss_cell(sample.ping.packet_loss_percent),
            dns_cell(sample),
            _graded("yes", Grade.BAD) if sample.is_outage else "",
        ]
        for sample in reversed(samples)
    ]
    header = ["Time", "Latency", "Packet Loss", "DNS", "Outage"]
    return "\n".join([_heading("Recent History"), _table(header, rows)])


def render_outages(outages: Sequence[OutageEvent], now: datetime) -> str:
    """Most recent outages first; open outages show their running length."""
    rows: list[list[str]] = []
    for event in sorted(outages, key=lambda item: item.start_time, reverse=True):
        if event.is_open:
            ended = _graded("ongoing", Grade.BAD)
            length = format_duration(max(0.0, event.elapsed(now).total_seconds()))
        else:
            ended = format_timestamp(event.end_time) if event.end_time is not None else ""
            length = format_duration(event.duration or 0.0)
        rows.append([
            format_timestamp(event.start_time),
            ended,
            length,
            outage_type_label(event),
            format_percent(event.metrics.packet_loss_percent),
            "failed" if event.metrics.dns_failure else "ok",
        ])
    header = ["Started", "Ended", "Duration", "Type", "Loss", "DNS"]
    return "\n".join([_heading("Outages"), _table(header, rows)])
