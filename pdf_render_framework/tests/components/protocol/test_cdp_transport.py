import asyncio
import socket
import time
from collections import defaultdict
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from pdf_render_framework.components.diagnostics.trace_collector import TraceCollector
from pdf_render_framework.components.engine.port_allocator import allocate_free_port
from pdf_render_framework.components.protocol.cdp_transport import (
    EngineSession,
    ProtocolTransport,
    is_known_broken,
    is_port_open,
    wait_until_reachable,
)
from pdf_render_framework.core.exceptions import CompatibilityWarning, ProtocolError, UnreachableError

BROKEN_VERSION = {"product": "HeadlessChrome/64.0.3282.140", "protocolVersion": "1.2"}
GOOD_VERSION = {"product": "HeadlessChrome/120.0.6099.71", "protocolVersion": "1.3"}


class FakeCDPSession:
    """Mimics the event-emitter surface of Playwright's CDPSession."""

    def __init__(self):
        self.listeners = defaultdict(list)
        self.send = AsyncMock(return_value={})
        self.detach = AsyncMock()

    def on(self, event, handler):
        self.listeners[event].append(handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    def emit(self, event, params):
        for handler in list(self.listeners[event]):
            handler(params)


async def _handle_connection(reader, writer):
    writer.close()


# --- Reachability ---

@pytest.mark.asyncio
async def test_port_that_opens_late_is_reached():
    port = allocate_free_port("127.0.0.1")
    servers = []

    async def listen_later():
        await asyncio.sleep(0.2)
        servers.append(await asyncio.start_server(_handle_connection, "127.0.0.1", port))

    opener = asyncio.ensure_future(listen_later())
    started = time.monotonic()
    try:
        await wait_until_reachable("127.0.0.1", port, timeout_ms=3000)
        elapsed = time.monotonic() - started
    finally:
        await opener
        for server in servers:
            server.close()
            await server.wait_closed()

    assert elapsed >= 0.19
    assert elapsed < 3.0


@pytest.mark.asyncio
async def test_port_that_never_opens_fails_at_the_budget():
    port = allocate_free_port("127.0.0.1")
    started = time.monotonic()

    with pytest.raises(UnreachableError) as excinfo:
        await wait_until_reachable("127.0.0.1", port, timeout_ms=200)
    elapsed = time.monotonic() - started

    assert 0.19 <= elapsed < 2.0
    assert excinfo.value.port == port
    assert excinfo.value.timeout_ms == 200


@pytest.mark.asyncio
async def test_stalled_connects_do_not_outlast_the_budget():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(0)
    port = listener.getsockname()[1]
    # Never accepted, so further connects sit in SYN retries.
    fillers = []
    for _ in range(8):
        filler = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        filler.setblocking(False)
        filler.connect_ex(("127.0.0.1", port))
        fillers.append(filler)

    started = time.monotonic()
    try:
        with pytest.raises(UnreachableError):
            await wait_until_reachable("127.0.0.1", port, timeout_ms=200)
        elapsed = time.monotonic() - started
    finally:
        for sock in fillers:
            sock.close()
        listener.close()

    assert elapsed < 1.0


@pytest.mark.asyncio
async def test_is_port_open():
    server = await asyncio.start_server(_handle_connection, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        assert await is_port_open("127.0.0.1", port)
    finally:
        server.close()
        await server.wait_closed()
    assert not await is_port_open("127.0.0.1", port)


def test_known_broken_versions():
    assert is_known_broken("HeadlessChrome/64.0.3282.140")
    assert is_known_broken("Chrome/64.0.3282.186")
    assert not is_known_broken("HeadlessChrome/65.0.3325.181")
    assert not is_known_broken("HeadlessChrome/120.0.6099.71")
    assert not is_known_broken("")


# --- EngineSession ---

@pytest.mark.asyncio
async def test_send_returns_result_and_wraps_driver_errors():
    cdp = FakeCDPSession()
    cdp.send.return_value = {"frameId": "frame-1"}
    session = EngineSession(cdp)

    assert await session.send("Page.navigate", {"url": "http://example.com"}) == {"frameId": "frame-1"}
    cdp.send.assert_awaited_with("Page.navigate", {"url": "http://example.com"})

    cdp.send.side_effect = PlaywrightError("Target closed")
    with pytest.raises(ProtocolError) as excinfo:
        await session.send("Page.printToPDF")
    assert "Target closed" in str(excinfo.value)


@pytest.mark.asyncio
async def test_wait_for_event_resolves_once_and_unsubscribes():
    cdp = FakeCDPSession()
    session = EngineSession(cdp)

    future = session.wait_for_event("Page.loadEventFired")
    cdp.emit("Page.loadEventFired", {"timestamp": 1.5})
    cdp.emit("Page.loadEventFired", {"timestamp": 2.5})

    assert await future == {"timestamp": 1.5}
    assert cdp.listeners["Page.loadEventFired"] == []


@pytest.mark.asyncio
async def test_close_removes_subscriptions_and_is_idempotent():
    cdp = FakeCDPSession()
    browser = MagicMock()
    browser.close = AsyncMock()
    context = MagicMock()
    context.close = AsyncMock()
    session = EngineSession(cdp, browser=browser, context=context)
    session.on("LayerTree.layerPainted", lambda params: None)
    pending = session.wait_for_event("Page.loadEventFired")

    await session.close()
    await session.close()

    assert all(not handlers for handlers in cdp.listeners.values())
    assert pending.cancelled()
    cdp.detach.assert_awaited_once()
    context.close.assert_awaited_once()
    browser.close.assert_awaited_once()
    with pytest.raises(ProtocolError):
        await session.send("Page.enable")


@pytest.mark.asyncio
async def test_close_tolerates_engine_already_gone():
    cdp = FakeCDPSession()
    cdp.detach.side_effect = PlaywrightError("Target page, context or browser has been closed")
    session = EngineSession(cdp)

    await session.close()

    assert session.closed


@pytest.mark.asyncio
async def test_disconnect_fails_pending_waits():
    cdp = FakeCDPSession()
    browser = MagicMock()
    session = EngineSession(cdp, browser=browser)
    browser.on.assert_called_once_with("disconnected", session._on_disconnected)
    pending = session.wait_for_event("Page.loadEventFired")

    session._on_disconnected(browser)

    with pytest.raises(ProtocolError):
        await pending


@pytest.mark.asyncio
async def test_disconnect_during_trace_flush_fails_the_wait():
    cdp = FakeCDPSession()
    browser = MagicMock()
    session = EngineSession(cdp, browser=browser)
    written = []
    collector = TraceCollector(written.append)
    await collector.start(session)
    asyncio.get_running_loop().call_later(0.05, session._on_disconnected, browser)

    with pytest.raises(ProtocolError):
        await asyncio.wait_for(collector.finish(session), 1.0)
    assert written == []


# --- ProtocolTransport ---

@pytest.mark.asyncio
async def test_connect_opens_a_fresh_page_session():
    cdp = FakeCDPSession()
    page = MagicMock()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.new_cdp_session = AsyncMock(return_value=cdp)
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    transport = ProtocolTransport()

    with patch.object(transport, "_connect_browser", new=AsyncMock(return_value=browser)) as connect_browser:
        session = await transport.connect("localhost", 9222)

    connect_browser.assert_awaited_once_with("localhost", 9222)
    context.new_cdp_session.assert_awaited_once_with(page)
    assert session.cdp is cdp
    assert session.page is page


@pytest.mark.asyncio
async def test_version_check_retries_until_engine_answers():
    transport = ProtocolTransport()
    get_version = AsyncMock(side_effect=[ProtocolError("not ready"), ProtocolError("not ready"), GOOD_VERSION])

    with patch.object(transport, "get_version", new=get_version):
        version = await transport.check_engine_version("localhost", 9222, timeout_ms=2000)

    assert version == GOOD_VERSION
    assert get_version.await_count == 3


@pytest.mark.asyncio
async def test_version_check_warns_about_known_broken_release():
    transport = ProtocolTransport()

    with patch.object(transport, "get_version", new=AsyncMock(return_value=BROKEN_VERSION)):
        with pytest.warns(CompatibilityWarning, match="64.0.3282.140"):
            version = await transport.check_engine_version("localhost", 9222, timeout_ms=1000)

    assert version == BROKEN_VERSION


@pytest.mark.asyncio
async def test_version_check_gives_up_after_budget_without_raising():
    transport = ProtocolTransport()
    get_version = AsyncMock(side_effect=ProtocolError("connection refused"))
    started = time.monotonic()

    with patch.object(transport, "get_version", new=get_version):
        version = await transport.check_engine_version("localhost", 9222, timeout_ms=100)

    assert version is None
    assert time.monotonic() - started >= 0.09
    assert get_version.await_count >= 2


@pytest.mark.asyncio
async def test_version_check_with_spent_budget_makes_one_final_attempt():
    transport = ProtocolTransport()
    get_version = AsyncMock(return_value=GOOD_VERSION)

    with patch.object(transport, "get_version", new=get_version):
        assert await transport.check_engine_version("localhost", 9222, timeout_ms=0) == GOOD_VERSION

    get_version.assert_awaited_once_with("localhost", 9222)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_connect_to_real_engine():
    """Requires a Chrome/Chromium listening on localhost:9222."""
    if not await is_port_open("localhost", 9222):
        pytest.skip("no engine listening on localhost:9222")
    async with ProtocolTransport() as transport:
        version = await transport.check_engine_version("localhost", 9222, timeout_ms=2000)
        assert version and "product" in version
        session = await transport.connect("localhost", 9222)
        try:
            result = await session.send("Runtime.evaluate", {"expression": "1 + 1", "returnByValue": True})
            assert result["result"]["value"] == 2
        finally:
            await session.close()
