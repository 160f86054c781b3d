"""
Forwards the page's console output and uncaught exceptions to the log.
"""
import logging
from typing import Any, Dict, Optional

from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)


def _format_remote_object(obj: Dict[str, Any]) -> str:
    if "value" in obj:
        return str(obj["value"])
    if "unserializableValue" in obj:
        return str(obj["unserializableValue"])
    return str(obj.get("description", obj.get("type", "")))


class ConsoleRelay:
    """Relays `Runtime.consoleAPICalled` and `Runtime.exceptionThrown` events."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    async def start(self, session) -> None:
        session.on("Runtime.consoleAPICalled", self.on_console_api_called)
        session.on("Runtime.exceptionThrown", self.on_exception_thrown)
        await session.send("Runtime.enable")

    def on_console_api_called(self, params: Dict[str, Any]) -> None:
        text = " ".join(_format_remote_object(arg) for arg in params.get("args", []))
        self.log.info(f"(page) ({params.get('type', 'log')}) {text}")

    def on_exception_thrown(self, params: Dict[str, Any]) -> None:
        details = params.get("exceptionDetails", {})
        exception = details.get("exception")
        text = _format_remote_object(exception) if exception else details.get("text", "")
        self.log.error(f"(page) (exception) {text}")
