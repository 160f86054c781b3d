"""
Engine component for the PDF Render Framework.

Everything needed to get a local headless browser running: picking a free
debugging port, finding the binary and supervising the spawned process.
"""
from .binary_finder import find_engine_binary, KNOWN_BINARIES
from .port_allocator import allocate_free_port
from .process_supervisor import EngineProcess, build_engine_args

__all__ = [
    "find_engine_binary",
    "KNOWN_BINARIES",
    "allocate_free_port",
    "EngineProcess",
    "build_engine_args",
]
