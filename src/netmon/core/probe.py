"""Reachability probe built on the system ping binary and the resolver.

Each tick runs a ping burst and a DNS lookup concurrently. Neither sub-probe
raises: a failed ping becomes a worst-case result (no latency, total loss)
and a failed lookup becomes ``success=False`` with the time spent waiting.
"""

import asyncio
import logging
import math
import re
import socket
import sys
import time
from datetime import UTC, datetime
from typing import Final

from netmon.types.models import DnsResult, PingResult, Sample

logger = logging.getLogger(__name__)

PING_EXECUTABLE: Final[str] = "ping"

# "5 packets transmitted, 4 received, 20% packet loss" (iputils)
# "5 packets transmitted, 4 packets received, 20.0% packet loss" (BSD/macOS)
_LOSS_PATTERN: Final[re.Pattern[str]] = re.compile(r"(\d+(?:\.\d+)?)%\s+packet\s+loss")

# "rtt min/avg/max/mdev = 9.1/10.2/11.3/0.4 ms" or "round-trip min/avg/max/stddev = ..."
_RTT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"min/avg/max/(?:mdev|stddev)\s*=\s*([\d.]+)/([\d.]+)/([\d.]+)/[\d.]+\s*ms"
)


def unreachable(host: str) -> PingResult:
    """Worst-case ping result: no latency measured, every packet lost."""
    return PingResult(host=host, min_ms=0.0, avg_ms=0.0, max_ms=0.0, packet_loss_percent=100.0)


def parse_ping_output(host: str, output: str) -> PingResult:
    """Extract loss and round-trip summary from ping's output.

    A missing loss line counts as total loss; a missing round-trip line
    (no replies) leaves the latencies at zero.

    Example:
        >>> parse_ping_output("h", "1 packets transmitted, 1 received, 0% packet loss\\n"
        ...     "rtt min/avg/max/mdev = 1.0/2.0/3.0/0.5 ms").avg_ms
        2.0
    """
    loss_match = _LOSS_PATTERN.search(output)
    if loss_match is None:
        return unreachable(host)
    loss = min(float(loss_match.group(1)), 100.0)

    rtt_match = _RTT_PATTERN.search(output)
    if rtt_match is None or loss == 100.0:
        return PingResult(host=host, min_ms=0.0, avg_ms=0.0, max_ms=0.0, packet_loss_percent=loss)

    return PingResult(
        host=host,
        min_ms=float(rtt_match.group(1)),
        avg_ms=float(rtt_match.group(2)),
        max_ms=float(rtt_match.group(3)),
        packet_loss_percent=loss,
    )


def build_ping_command(host: str, count: int, timeout: float) -> list[str]:
    """Build the ping argument list for the current platform.

    Both variants bound the whole burst, not each reply.
    """
    deadline = str(max(1, math.ceil(timeout)))
    if sys.platform == "darwin":
        return [PING_EXECUTABLE, "-c", str(count), "-t", deadline, host]
    return [PING_EXECUTABLE, "-c", str(count), "-w", deadline, host]


class SystemProbe:
    """Probe source producing one ``Sample`` per call to ``collect``."""

    def __init__(
        self,
        host: str,
        dns_query_host: str,
        *,
        ping_count: int = 5,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the probe.

        Args:
            host: Host to ping
            dns_query_host: Hostname resolved to measure DNS health
            ping_count: Echo requests per burst
            timeout: Upper bound in seconds for each sub-probe
        """
        if ping_count < 1:
            raise ValueError("Ping count must be at least 1")
        if timeout <= 0:
            raise ValueError("Probe timeout must be positive")

        self.host: str = host
        self.dns_query_host: str = dns_query_host
        self.ping_count: int = ping_count
        self.timeout: float = timeout

    async def ping(self) -> PingResult:
        """Run one ping burst. Never raises for network or process failures."""
        command = build_ping_command(self.host, self.ping_count, self.timeout)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error(
                "Could not start ping",
                extra={"command": command[0], "error": str(exc)},
            )
            return unreachable(self.host)

        try:
            # Small grace period over ping's own deadline for process startup
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout + 1)
        except TimeoutError:
            proc.kill()
            _ = await proc.wait()
            logger.warning(
                "Ping timed out",
                extra={"host": self.host, "timeout": self.timeout},
            )
            return unreachable(self.host)

        result = parse_ping_output(self.host, stdout.decode(errors="replace"))
        logger.debug(
            "Ping finished",
            extra={
                "host": self.host,
                "returncode": proc.returncode,
                "avg_ms": result.avg_ms,
                "packet_loss": result.packet_loss_percent,
            },
        )
        return result

    async def resolve(self) -> DnsResult:
        """Time one IPv4 lookup of ``dns_query_host``."""
        loop = asyncio.get_running_loop()
        start = time.perf_counter()
        try:
            _ = await asyncio.wait_for(
                loop.getaddrinfo(self.dns_query_host, None, family=socket.AF_INET),
                timeout=self.timeout,
            )
        except (OSError, TimeoutError) as exc:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.debug(
                "DNS lookup failed",
                extra={"query": self.dns_query_host, "error": str(exc) or type(exc).__name__},
            )
            return DnsResult(response_time_ms=round(elapsed_ms, 2), success=False)

        elapsed_ms = (time.perf_counter() - start) * 1000
        return DnsResult(response_time_ms=round(elapsed_ms, 2), success=True)

    async def collect(self) -> Sample:
        """Run both sub-probes concurrently and assemble a sample."""
        timestamp = datetime.now(tz=UTC)
        async with asyncio.TaskGroup() as tg:
            ping_task = tg.create_task(self.ping())
            dns_task = tg.create_task(self.resolve())
        return Sample(timestamp=timestamp, ping=ping_task.result(), dns=dns_task.result())
