"""
Ephemeral TCP port allocation for locally spawned engines.
"""
import socket

from pdf_render_framework.core.exceptions import ResourceError
from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)


def allocate_free_port(host: str = "") -> int:
    """
    Asks the OS for a free TCP port by binding an ephemeral socket and releasing it.

    Args:
        host (str): Interface to bind on. Empty string binds all interfaces.

    Returns:
        int: The port number the OS assigned.

    Raises:
        ResourceError: If no socket could be bound.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((host, 0))
            port = sock.getsockname()[1]
    except OSError as e:
        logger.error(f"Failed to allocate a free port: {e}", exc_info=True)
        raise ResourceError("Failed to allocate a free TCP port for the engine", original_exception=e)
    logger.debug(f"Allocated free port {port}")
    return port
