"""
Logs how long each network request issued by the page took.
"""
import logging
from typing import Any, Dict, Optional

from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)


class NetworkMonitor:
    """
    Pairs `Network.requestWillBeSent` with `Network.responseReceived` by request id.

    Requests that never get a response simply stay in `pending` until the job
    ends; they are neither retried nor reported.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger
        self.pending: Dict[str, float] = {}

    async def start(self, session) -> None:
        session.on("Network.requestWillBeSent", self.on_request_will_be_sent)
        session.on("Network.responseReceived", self.on_response_received)
        await session.send("Network.enable")

    def on_request_will_be_sent(self, params: Dict[str, Any]) -> None:
        self.pending[params["requestId"]] = params["timestamp"]

    def on_response_received(self, params: Dict[str, Any]) -> Optional[float]:
        started = self.pending.pop(params["requestId"], None)
        if started is None:
            return None
        # Protocol timestamps are monotonic seconds.
        elapsed_ms = (params["timestamp"] - started) * 1000
        response = params.get("response", {})
        self.log.info(f"(network) {response.get('status')} {response.get('url')} {round(elapsed_ms)}ms")
        return elapsed_ms
