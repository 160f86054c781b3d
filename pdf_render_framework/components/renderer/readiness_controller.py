"""
Readiness controller: drives one page from navigation to a captured PDF.

There is no reliable "page is done" signal, so readiness is decided by a
sequence of waits:

1. Navigate and wait for the load event, while concurrently waiting for the
   page's scripts (either a virtual-time budget or a page-defined DOM event).
2. Wait for painting to settle: a 100 ms timer restarted on every
   `LayerTree.layerPainted`, bounded by an overall ceiling.
3. Print to PDF and decode the result. If a trace is being recorded, capture
   also waits for the trace to be flushed.

Every stage is timed and logged. A failing stage raises `RenderError`
naming the stage.
"""
import asyncio
import base64
import json
from typing import Any, Awaitable, List, Optional, Set

from pdf_render_framework.components.diagnostics.trace_collector import TraceCollector
from pdf_render_framework.components.renderer.jobs import (
    CustomEventSignal,
    RenderJob,
    RenderStage,
    ScriptWaitPolicy,
    VirtualTimeBudget,
)
from pdf_render_framework.core.exceptions import ProtocolError, RenderError
from pdf_render_framework.core.logger import get_logger, log_duration

logger = get_logger(__name__)

SETTLE_INTERVAL_MS = 100
EVENT_FLAG = "__pdfRenderEventFired"

_INSTALL_EVENT_LISTENER_JS = """(() => {{
  window.{flag} = false;
  window.addEventListener({name}, () => {{ window.{flag} = true; }}, {{once: true, capture: true}});
}})();"""

_WAIT_FOR_EVENT_JS = """new Promise((resolve) => {{
  if (window.{flag}) {{ resolve(true); return; }}
  window.addEventListener({name}, () => resolve(true), {{once: true, capture: true}});
}})"""


class VirtualTimeWaiter:
    """Lets the engine run page timers on virtual time until the budget expires."""

    def __init__(self, policy: VirtualTimeBudget):
        self.policy = policy
        self._expired: Optional[asyncio.Future] = None

    async def prepare(self, session) -> None:
        self._expired = session.wait_for_event("Emulation.virtualTimeBudgetExpired")

    async def after_navigate(self, session) -> None:
        await session.send("Emulation.setVirtualTimePolicy", {
            "policy": "pauseIfNetworkFetchesPending",
            "budget": self.policy.budget_ms,
        })

    async def wait(self, session) -> None:
        await self._expired


class CustomEventWaiter:
    """
    Waits for the page to dispatch a named DOM event.

    A listener is installed before navigation on every new document, so an
    event fired before the wait expression runs is not missed.
    """

    def __init__(self, policy: CustomEventSignal):
        self.policy = policy
        self._dom_ready: Optional[asyncio.Future] = None

    async def prepare(self, session) -> None:
        name = json.dumps(self.policy.event_name)
        await session.send("Page.addScriptToEvaluateOnNewDocument", {
            "source": _INSTALL_EVENT_LISTENER_JS.format(flag=EVENT_FLAG, name=name),
        })
        self._dom_ready = session.wait_for_event("Page.domContentEventFired")

    async def after_navigate(self, session) -> None:
        pass

    async def wait(self, session) -> None:
        await self._dom_ready
        name = json.dumps(self.policy.event_name)
        result = await session.send("Runtime.evaluate", {
            "expression": _WAIT_FOR_EVENT_JS.format(flag=EVENT_FLAG, name=name),
            "awaitPromise": True,
            "returnByValue": True,
        })
        if "exceptionDetails" in result:
            details = result["exceptionDetails"]
            raise ProtocolError(f"Waiting for '{self.policy.event_name}' failed: {details.get('text', details)}")


def create_script_waiter(policy: ScriptWaitPolicy):
    if isinstance(policy, VirtualTimeBudget):
        return VirtualTimeWaiter(policy)
    if isinstance(policy, CustomEventSignal):
        return CustomEventWaiter(policy)
    raise TypeError(f"Unsupported script wait policy: {policy!r}")


class PaintSettleWaiter:
    """
    Debounces `LayerTree.layerPainted` events.

    Resolves once `settle_ms` pass without a paint, or when `ceiling_ms`
    elapses, whichever comes first.
    """

    def __init__(self, ceiling_ms: int, settle_ms: int = SETTLE_INTERVAL_MS):
        self.ceiling_ms = ceiling_ms
        self.settle_ms = settle_ms
        self.paints = 0

    async def wait(self, session) -> str:
        """Returns "settled" or "ceiling" depending on which condition ended the wait."""
        loop = asyncio.get_running_loop()
        settled = loop.create_future()

        def _settle() -> None:
            if not settled.done():
                settled.set_result(None)

        timer = loop.call_later(self.settle_ms / 1000, _settle)

        def _on_paint(params: Any) -> None:
            nonlocal timer
            self.paints += 1
            timer.cancel()
            timer = loop.call_later(self.settle_ms / 1000, _settle)

        session.on("LayerTree.layerPainted", _on_paint)
        try:
            await asyncio.wait_for(settled, timeout=self.ceiling_ms / 1000)
            return "settled"
        except asyncio.TimeoutError:
            return "ceiling"
        finally:
            timer.cancel()
            session.off("LayerTree.layerPainted", _on_paint)


class ReadinessController:
    """
    Runs the stages of one `RenderJob` against an open `EngineSession`.

    Attributes:
        stage (RenderStage): The most recent stage entered.
        active (Set[RenderStage]): Stages currently running.
        completed (List[RenderStage]): Stages that finished, in completion order.
    """

    def __init__(self, session, job: RenderJob, trace_collector: Optional[TraceCollector] = None,
                 log_timings: bool = True):
        self.session = session
        self.job = job
        self.trace_collector = trace_collector
        self.log_timings = log_timings
        self.script_waiter = create_script_waiter(job.script_wait)
        self.stage = RenderStage.IDLE
        self.active: Set[RenderStage] = set()
        self.completed: List[RenderStage] = []

    async def _run_stage(self, stage: RenderStage, awaitable: Awaitable, label: str) -> Any:
        self.stage = stage
        self.active.add(stage)
        try:
            async with log_duration(logger, label, enabled=self.log_timings):
                result = await awaitable
        except RenderError:
            raise
        except Exception as e:
            logger.debug(f"Stage '{stage.value}' failed: {e}")
            raise RenderError(stage.value, e) from e
        finally:
            self.active.discard(stage)
        self.completed.append(stage)
        return result

    async def run(self) -> bytes:
        """Drives the job through every stage and returns the PDF bytes."""
        if self.stage is not RenderStage.IDLE:
            raise RuntimeError("A ReadinessController runs exactly once.")

        loaded = await self._run_stage(RenderStage.NAVIGATING, self._navigate(), "Navigate")

        load_task = asyncio.ensure_future(
            self._run_stage(RenderStage.AWAITING_LOAD, loaded, "Wait for load"))
        script_task = asyncio.ensure_future(
            self._run_stage(RenderStage.AWAITING_SCRIPT, self.script_waiter.wait(self.session), "Wait for js execution"))
        try:
            await asyncio.gather(load_task, script_task)
        except BaseException:
            load_task.cancel()
            script_task.cancel()
            raise

        settle = PaintSettleWaiter(self.job.animation_time_budget_ms)
        outcome = await self._run_stage(
            RenderStage.AWAITING_ANIMATION_SETTLE, settle.wait(self.session), "Wait for animations")
        logger.debug(f"Animations {outcome} after {settle.paints} paints")

        pdf = await self._run_stage(RenderStage.CAPTURING, self._capture(), "Print to PDF")
        self.stage = RenderStage.DONE
        return pdf

    async def _navigate(self) -> asyncio.Future:
        loaded = self.session.wait_for_event("Page.loadEventFired")
        await self.script_waiter.prepare(self.session)
        result = await self.session.send("Page.navigate", {"url": self.job.url})
        if result.get("errorText"):
            raise ProtocolError(f"Navigation to {self.job.url} failed: {result['errorText']}")
        await self.script_waiter.after_navigate(self.session)
        return loaded

    async def _capture(self) -> bytes:
        result = await self.session.send("Page.printToPDF", dict(self.job.print_options))
        pdf = base64.b64decode(result["data"])
        if self.trace_collector is not None:
            await self.trace_collector.finish(self.session)
        return pdf
