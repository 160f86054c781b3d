"""
Collects an engine performance trace for a single render job.
"""
import asyncio
from typing import Any, Callable, Dict, List, Optional

from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)

TraceSink = Callable[[Dict[str, Any]], Any]


class TraceCollector:
    """
    Buffers trace fragments delivered by `Tracing.dataCollected` and hands a
    single `{"traceEvents": [...]}` document to `sink` once the engine reports
    `Tracing.tracingComplete`.

    A collector belongs to exactly one render job and must not be reused.
    """

    def __init__(self, sink: TraceSink):
        self.sink = sink
        self.buffer: List[Dict[str, Any]] = []
        self.document: Optional[Dict[str, Any]] = None
        self._complete: Optional[asyncio.Future] = None

    def attach(self, session) -> None:
        session.on("Tracing.dataCollected", self.on_data_collected)
        # Tracked by the session, so a disconnect fails the wait.
        self._complete = session.wait_for_event("Tracing.tracingComplete")

    async def start(self, session) -> None:
        """Subscribes to tracing events and asks the engine to start tracing."""
        self.attach(session)
        await session.send("Tracing.start", {"transferMode": "ReportEvents"})
        logger.debug("Tracing started")

    def on_data_collected(self, params: Dict[str, Any]) -> None:
        self.buffer.extend(params.get("value", []))

    def on_tracing_complete(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Builds the trace document from the buffered fragments and writes it to the sink."""
        document = {"traceEvents": list(self.buffer)}
        logger.debug(f"Tracing complete: {len(self.buffer)} events")
        try:
            self.sink(document)
        except Exception as e:
            logger.error(f"Failed to write trace: {e}", exc_info=True)
            raise
        self.document = document
        return document

    async def wait_complete(self) -> Dict[str, Any]:
        """
        Waits for the "tracing complete" signal and returns the written document.

        Raises:
            ProtocolError: If the session disconnects before tracing completes.
        """
        if self.document is not None:
            return self.document
        params = await self._complete
        return self.on_tracing_complete(params)

    async def finish(self, session) -> Dict[str, Any]:
        """Stops tracing and waits until the full trace has been flushed to the sink."""
        await session.send("Tracing.end")
        return await self.wait_complete()
