"""
Renders web pages to PDF through a headless Chrome/Chromium engine.

This module provides the `PdfRenderer` class, an asynchronous context manager
that owns one engine for its whole lifetime: it spawns the engine locally (or
attaches to a remote one), waits for the debugging port, and then renders any
number of URLs one after another over short-lived protocol sessions.
"""
import asyncio
import time
from typing import Any, Callable, Dict, Optional

from pdf_render_framework.components.diagnostics import ConsoleRelay, NetworkMonitor, TraceCollector
from pdf_render_framework.components.engine import EngineProcess, allocate_free_port, find_engine_binary
from pdf_render_framework.components.protocol import (
    KNOWN_BROKEN_NOTICE,
    ProtocolTransport,
    is_known_broken,
    wait_until_reachable,
)
from pdf_render_framework.components.storage.file_storage import FileStorage
from pdf_render_framework.components.renderer.jobs import RenderJob, RenderStage
from pdf_render_framework.components.renderer.options import RendererOptions
from pdf_render_framework.components.renderer.print_options import build_print_options
from pdf_render_framework.components.renderer.readiness_controller import ReadinessController
from pdf_render_framework.core.exceptions import ProtocolError, RenderError
from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)

LOCAL_HOST = "localhost"


class PdfRenderer:
    """
    Asynchronous context manager around one browser engine.

    Entering the context starts the engine (unless `remote_host` is set) and
    waits until it accepts protocol connections; leaving it kills the engine
    if this renderer spawned it. Jobs submitted with `render_pdf` are run one
    at a time, each over its own session.

    Attributes:
        options (RendererOptions): Immutable settings for this renderer.
        host (str): Host of the debugging endpoint.
        port (Optional[int]): Port of the debugging endpoint; allocated on spawn when local.
        engine (Optional[EngineProcess]): The owned engine process, None when remote.
    """

    def __init__(
        self,
        options: Optional[RendererOptions] = None,
        storage: Optional[FileStorage] = None,
        transport: Optional[ProtocolTransport] = None,
        trace_sink: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ):
        self.options = options or RendererOptions()
        self.storage = storage
        self.transport = transport or ProtocolTransport()
        self.trace_sink = trace_sink
        self.engine: Optional[EngineProcess] = None
        self._session_lock = asyncio.Lock()

        if self.options.remote_host:
            self.host = self.options.remote_host
            self.port: Optional[int] = self.options.remote_port
        else:
            self.host = LOCAL_HOST
            self.port = None

    @property
    def is_remote(self) -> bool:
        return bool(self.options.remote_host)

    async def __aenter__(self) -> 'PdfRenderer':
        try:
            await self.connect_to_engine()
        except BaseException:
            await self.kill_engine()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.kill_engine()

    def log(self, message: str) -> None:
        if self.options.print_logs:
            logger.info(message)

    def error(self, message: str, exc_info: bool = False) -> None:
        if self.options.print_errors:
            logger.error(message, exc_info=exc_info)

    async def spawn_engine(self) -> EngineProcess:
        """
        Starts a local engine on a free port.

        Raises:
            BinaryNotFoundError: If no binary was configured and none could be detected.
            ResourceError: If no port could be allocated or the process failed to start.
        """
        if self.port is None:
            self.port = allocate_free_port()
        binary = self.options.chrome_binary or find_engine_binary()
        self.log(f"Using {binary}")
        self.engine = await EngineProcess.spawn(
            binary,
            self.port,
            extra_args=self.options.chrome_options,
            window_size=self.options.window_size,
            log_output=self.options.print_logs,
        )
        return self.engine

    async def connect_to_engine(self) -> None:
        """Spawns the engine when local, then waits until it is usable."""
        await self.transport.start()
        if not self.is_remote:
            await self.spawn_engine()
        await self.wait_for_debug_port()

    async def wait_for_debug_port(self, timeout_ms: Optional[int] = None) -> None:
        """
        Waits for the debugging port, then checks the engine version.

        Both steps share one `timeout_ms` deadline; each gets one last attempt
        after the deadline passes.

        Raises:
            UnreachableError: If the port never accepted a connection.
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self.options.port_wait_timeout_ms
        started = time.monotonic()
        self.log("Waiting for chrome to become available")
        await wait_until_reachable(self.host, self.port, timeout_ms)
        self.log("Chrome port open!")
        remaining_ms = max(0, timeout_ms - int((time.monotonic() - started) * 1000))
        await self.check_engine_version(remaining_ms)

    async def check_engine_version(self, timeout_ms: int) -> Optional[Dict[str, Any]]:
        version = await self.transport.check_engine_version(self.host, self.port, timeout_ms)
        if version is None:
            self.error("Wasn't able to check chrome version, skipping compatibility check.")
            return None
        product = version.get("product", "")
        if is_known_broken(product):
            for line in KNOWN_BROKEN_NOTICE:
                self.error(line)
        self.log(f"Connected to {product}, protocol {version.get('protocolVersion')}")
        return version

    async def kill_engine(self) -> None:
        """Kills the owned engine, if any, and stops the protocol driver. Remote engines are left running."""
        if self.engine is not None:
            await self.engine.kill()
            self.engine = None
        await self.transport.stop()

    def generate_pdf_options(self) -> Dict[str, Any]:
        return build_print_options(self.options)

    def create_job(self, url: str, print_options: Optional[Dict[str, Any]] = None) -> RenderJob:
        return RenderJob(
            url=url,
            print_options=dict(print_options) if print_options is not None else self.generate_pdf_options(),
            script_wait=self.options.script_wait_policy,
            animation_time_budget_ms=self.options.animation_time_budget_ms,
        )

    def _write_trace(self, document: Dict[str, Any]) -> None:
        if self.trace_sink is not None:
            self.trace_sink(document)
            return
        if self.storage is None:
            self.storage = FileStorage()
        path = self.storage.save_json(document, self.options.trace_output, overwrite=True)
        self.log(f"Saved trace {path}")

    async def render_pdf(self, url: str, print_options: Optional[Dict[str, Any]] = None) -> bytes:
        """
        Renders `url` and returns the PDF bytes.

        Args:
            url (str): Page to render.
            print_options (Optional[Dict[str, Any]]): Protocol print parameters; derived
                from this renderer's options when omitted.

        Raises:
            RenderError: If opening the session or any stage fails. The session is
                         always closed before this propagates.
        """
        job = self.create_job(url, print_options)
        async with self._session_lock:
            self.log(f"Opening {url}")
            try:
                session = await self.transport.connect(self.host, self.port)
            except ProtocolError as e:
                raise RenderError(RenderStage.IDLE.value, e) from e
            try:
                return await self._run_job(session, job)
            finally:
                await session.close()

    async def _run_job(self, session, job: RenderJob) -> bytes:
        trace = TraceCollector(self._write_trace) if self.options.trace_output else None
        try:
            await session.send("Page.enable")
            await session.send("LayerTree.enable")
            if self.options.log_console:
                await ConsoleRelay().start(session)
            if self.options.log_network_requests:
                await NetworkMonitor().start(session)
            if trace is not None:
                await trace.start(session)
        except ProtocolError as e:
            raise RenderError(RenderStage.IDLE.value, e) from e
        controller = ReadinessController(session, job, trace_collector=trace, log_timings=self.options.print_logs)
        return await controller.run()
