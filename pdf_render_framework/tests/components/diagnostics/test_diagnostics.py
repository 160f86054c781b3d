import logging

import pytest

from pdf_render_framework.components.diagnostics.console_relay import ConsoleRelay
from pdf_render_framework.components.diagnostics.network_monitor import NetworkMonitor
from pdf_render_framework.components.diagnostics.trace_collector import TraceCollector


# --- TraceCollector ---

@pytest.mark.asyncio
async def test_trace_fragments_are_concatenated_in_delivery_order(session):
    written = []
    collector = TraceCollector(written.append)
    await collector.start(session)

    session.emit("Tracing.dataCollected", {"value": [{"name": "a"}]})
    session.emit("Tracing.dataCollected", {"value": [{"name": "b"}]})
    session.emit("Tracing.dataCollected", {"value": [{"name": "c"}]})
    session.emit("Tracing.tracingComplete", {"dataLossOccurred": False})

    document = await collector.wait_complete()
    assert document == {"traceEvents": [{"name": "a"}, {"name": "b"}, {"name": "c"}]}
    assert written == [document]
    assert session.params_for("Tracing.start") == [{"transferMode": "ReportEvents"}]


@pytest.mark.asyncio
async def test_finish_ends_tracing_and_waits_for_flush(session):
    written = []

    def _end(params):
        session.emit_later(0.0, "Tracing.dataCollected", {"value": [{"name": "x"}, {"name": "y"}]})
        session.emit_later(0.01, "Tracing.tracingComplete")
        return {}

    session.responses["Tracing.end"] = _end
    collector = TraceCollector(written.append)
    await collector.start(session)

    document = await collector.finish(session)

    assert document == {"traceEvents": [{"name": "x"}, {"name": "y"}]}
    assert written == [document]


@pytest.mark.asyncio
async def test_trace_sink_failure_surfaces_to_waiter(session):
    def _broken_sink(document):
        raise OSError("disk full")

    collector = TraceCollector(_broken_sink)
    await collector.start(session)
    session.emit("Tracing.tracingComplete")

    with pytest.raises(OSError, match="disk full"):
        await collector.wait_complete()


# --- NetworkMonitor ---

@pytest.mark.asyncio
async def test_network_monitor_logs_request_durations(session, caplog):
    caplog.set_level(logging.INFO, logger="pdf_render_framework.components.diagnostics.network_monitor")
    monitor = NetworkMonitor()
    await monitor.start(session)

    session.emit("Network.requestWillBeSent", {"requestId": "1", "timestamp": 100.0})
    session.emit("Network.requestWillBeSent", {"requestId": "2", "timestamp": 100.5})
    session.emit("Network.responseReceived", {
        "requestId": "1",
        "timestamp": 100.25,
        "response": {"status": 200, "url": "http://example.com/"},
    })

    assert session.methods == ["Network.enable"]
    assert list(monitor.pending) == ["2"]
    assert "(network) 200 http://example.com/ 250ms" in [r.getMessage() for r in caplog.records]


def test_response_without_request_is_ignored():
    monitor = NetworkMonitor()
    assert monitor.on_response_received({"requestId": "404", "timestamp": 1.0, "response": {}}) is None


# --- ConsoleRelay ---

@pytest.mark.asyncio
async def test_console_relay_forwards_page_output(session, caplog):
    caplog.set_level(logging.INFO, logger="pdf_render_framework.components.diagnostics.console_relay")
    relay = ConsoleRelay()
    await relay.start(session)

    session.emit("Runtime.consoleAPICalled", {
        "type": "warning",
        "args": [{"type": "string", "value": "slow font"}, {"type": "number", "value": 3}],
    })
    session.emit("Runtime.exceptionThrown", {
        "exceptionDetails": {"text": "Uncaught", "exception": {"type": "object", "description": "TypeError: x is undefined"}},
    })

    assert session.methods == ["Runtime.enable"]
    records = [(r.levelname, r.getMessage()) for r in caplog.records]
    assert ("INFO", "(page) (warning) slow font 3") in records
    assert ("ERROR", "(page) (exception) TypeError: x is undefined") in records
