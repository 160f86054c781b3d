"""
Locates an installed Chrome/Chromium binary from a fixed table of known names and paths.
"""
import os
import shutil
import sys
from typing import Dict, List, Optional, Sequence

from pdf_render_framework.core.exceptions import BinaryNotFoundError
from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)

# Probed in order; the first entry that resolves wins.
KNOWN_BINARIES: Dict[str, List[str]] = {
    "linux": [
        "google-chrome-unstable",
        "google-chrome-beta",
        "google-chrome-stable",
        "google-chrome",
        "chromium",
        "chromium-browser",
    ],
    "win32": [
        "chrome",
        "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
        "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    ],
    "darwin": [
        "/Applications/Google Chrome Canary.app/Contents/MacOS/Google Chrome Canary",
        "/Applications/Google Chrome Dev.app/Contents/MacOS/Google Chrome Dev",
        "/Applications/Google Chrome Beta.app/Contents/MacOS/Google Chrome Beta",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    ],
}


def _platform_family(platform: str) -> str:
    if platform.startswith("win"):
        return "win32"
    if platform == "darwin":
        return "darwin"
    return "linux"


def _resolve(candidate: str) -> Optional[str]:
    if os.path.isabs(candidate):
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
        return None
    return shutil.which(candidate)


def find_engine_binary(candidates: Optional[Sequence[str]] = None, platform: Optional[str] = None) -> str:
    """
    Returns the first known engine binary that exists on this machine.

    Args:
        candidates (Optional[Sequence[str]]): Names/paths to probe instead of the built-in table.
        platform (Optional[str]): Overrides `sys.platform` when choosing the table.

    Raises:
        BinaryNotFoundError: If none of the candidates resolve.
    """
    if candidates is None:
        candidates = KNOWN_BINARIES[_platform_family(platform or sys.platform)]
    for candidate in candidates:
        resolved = _resolve(candidate)
        if resolved:
            logger.debug(f"Detected engine binary '{candidate}' at {resolved}")
            return resolved
    logger.error(f"No engine binary found among: {', '.join(candidates)}")
    raise BinaryNotFoundError(searched=list(candidates))
