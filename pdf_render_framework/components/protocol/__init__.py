"""
Protocol component: CDP sessions, reachability probing and engine version checks.
"""
from .cdp_transport import (
    EngineSession,
    ProtocolTransport,
    is_port_open,
    wait_until_reachable,
    is_known_broken,
    KNOWN_BROKEN_NOTICE,
)

__all__ = [
    "EngineSession",
    "ProtocolTransport",
    "is_port_open",
    "wait_until_reachable",
    "is_known_broken",
    "KNOWN_BROKEN_NOTICE",
]
