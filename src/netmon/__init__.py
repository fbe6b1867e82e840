"""netmon - Monitor network connection quality.

This package samples latency, packet loss and DNS resolution on a fixed
interval, turns sustained failures into outage events and keeps a durable
history from which rolling statistics are derived.
"""

from netmon.__main__ import main

__all__ = ["main"]
