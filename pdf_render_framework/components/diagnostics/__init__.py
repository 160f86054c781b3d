"""
Optional per-job diagnostics: tracing, network timing and console relaying.
"""
from .console_relay import ConsoleRelay
from .network_monitor import NetworkMonitor
from .trace_collector import TraceCollector

__all__ = [
    "ConsoleRelay",
    "NetworkMonitor",
    "TraceCollector",
]
