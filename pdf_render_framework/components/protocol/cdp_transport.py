"""
Remote-debugging protocol transport.

This module opens Chrome DevTools Protocol (CDP) sessions against a running
engine through Playwright's `connect_over_cdp`, and provides the reachability
probe and engine version check that run before any session is opened.

`EngineSession` is the single consumer of protocol events for one render job:
every subscription made through it is tracked and removed when the session
closes, and one-shot waits fail as soon as the connection drops.
"""
import asyncio
import time
import warnings
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.async_api import async_playwright, Playwright, Browser, BrowserContext, Page, CDPSession
from playwright.async_api import Error as PlaywrightError

from pdf_render_framework.core.exceptions import CompatibilityWarning, ProtocolError, UnreachableError
from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)

POLL_INTERVAL_MS = 10
FINAL_ATTEMPT_TIMEOUT_MS = 50
KNOWN_BROKEN_VERSION_MARKER = "/64."
KNOWN_BROKEN_NOTICE = [
    "     ===== WARNING =====",
    "  Detected Chrome in version 64.x",
    "  This version is known to contain bug in remote api that prevents this tool to work",
    "  This issue is resolved in version 65",
]

EventHandler = Callable[[Dict[str, Any]], Any]


async def is_port_open(host: str, port: int, timeout_s: Optional[float] = None) -> bool:
    """Attempts a raw TCP connect-and-close against host:port; a connect still pending after `timeout_s` counts as closed."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout_s)
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


async def wait_until_reachable(host: str, port: int, timeout_ms: int, poll_interval_ms: int = POLL_INTERVAL_MS) -> None:
    """
    Polls host:port until a TCP connection succeeds.

    Polling stops on the first success or once `timeout_ms` is spent; in the
    latter case one final connection attempt decides the outcome. No attempt
    outlives the remaining budget, and the final one is capped at
    `FINAL_ATTEMPT_TIMEOUT_MS`.

    Raises:
        UnreachableError: If the final attempt fails too.
    """
    deadline = time.monotonic() + timeout_ms / 1000
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        if await is_port_open(host, port, remaining):
            logger.debug(f"Debugging port {host}:{port} open")
            return
        await asyncio.sleep(poll_interval_ms / 1000)
    if not await is_port_open(host, port, FINAL_ATTEMPT_TIMEOUT_MS / 1000):
        raise UnreachableError(host, port, timeout_ms)
    logger.debug(f"Debugging port {host}:{port} open (final attempt)")


def is_known_broken(product: str) -> bool:
    """True when the engine's product string names a release with a broken remote API."""
    return KNOWN_BROKEN_VERSION_MARKER in product


class EngineSession:
    """
    One protocol connection bound to one page of one engine.

    Wraps a Playwright `CDPSession` and the objects that own it. Callers send
    commands with `send`, subscribe with `on`, and wait for a single event with
    `wait_for_event`. `close` removes every subscription and releases the page,
    context and connection; it is safe to call more than once.
    """

    def __init__(
        self,
        cdp: CDPSession,
        browser: Optional[Browser] = None,
        context: Optional[BrowserContext] = None,
        page: Optional[Page] = None,
    ):
        self.cdp = cdp
        self.browser = browser
        self.context = context
        self.page = page
        self.closed = False
        self._subscriptions: List[Tuple[str, EventHandler]] = []
        self._pending: List[asyncio.Future] = []
        if browser is not None:
            browser.on("disconnected", self._on_disconnected)

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Sends a protocol command and returns its result."""
        if self.closed:
            raise ProtocolError(f"Cannot send '{method}': session is closed.")
        try:
            return await self.cdp.send(method, params or {})
        except PlaywrightError as e:
            raise ProtocolError(f"'{method}' failed: {e.message}") from e

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribes `handler` to `event` for the rest of the session."""
        self.cdp.on(event, handler)
        self._subscriptions.append((event, handler))

    def off(self, event: str, handler: EventHandler) -> None:
        if (event, handler) in self._subscriptions:
            self._subscriptions.remove((event, handler))
            self.cdp.remove_listener(event, handler)

    def wait_for_event(self, event: str) -> asyncio.Future:
        """
        Returns a future resolved with the params of the next `event`.

        The subscription is made immediately, so the event cannot slip past
        between this call and awaiting the future.
        """
        future = asyncio.get_running_loop().create_future()

        def _handler(params: Dict[str, Any]) -> None:
            self.off(event, _handler)
            if not future.done():
                future.set_result(params)

        self.on(event, _handler)
        self._pending.append(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: asyncio.Future) -> None:
        if future in self._pending:
            self._pending.remove(future)

    def _fail_pending(self, exc: BaseException) -> None:
        for future in list(self._pending):
            if not future.done():
                future.set_exception(exc)

    def _on_disconnected(self, *_: Any) -> None:
        logger.warning("Engine session disconnected")
        self._fail_pending(ProtocolError("Engine session disconnected."))

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for event, handler in list(self._subscriptions):
            self.cdp.remove_listener(event, handler)
        self._subscriptions.clear()
        for future in list(self._pending):
            if not future.done():
                future.cancel()
        try:
            await self.cdp.detach()
            if self.context is not None:
                await self.context.close()
            if self.browser is not None:
                self.browser.remove_listener("disconnected", self._on_disconnected)
                await self.browser.close()
        except PlaywrightError as e:
            # The engine may already be gone; nothing is left to release.
            logger.debug(f"Ignoring error while closing session: {e.message}")
        logger.debug("Engine session closed")


class ProtocolTransport:
    """
    Opens protocol sessions against an engine's debugging endpoint.

    Usable as an async context manager; the Playwright driver is started on
    entry and stopped on exit, and lives as long as the renderer that owns it.
    """

    def __init__(self):
        self.playwright: Optional[Playwright] = None

    async def __aenter__(self) -> 'ProtocolTransport':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        if self.playwright is None:
            self.playwright = await async_playwright().start()
            logger.debug("Playwright driver started")

    async def stop(self) -> None:
        if self.playwright is not None:
            await self.playwright.stop()
            self.playwright = None
            logger.debug("Playwright driver stopped")

    async def _connect_browser(self, host: str, port: int) -> Browser:
        await self.start()
        endpoint = f"http://{host}:{port}"
        try:
            return await self.playwright.chromium.connect_over_cdp(endpoint)
        except PlaywrightError as e:
            raise ProtocolError(f"Failed to connect to {endpoint}: {e.message}") from e

    async def connect(self, host: str, port: int) -> EngineSession:
        """
        Opens a session on a fresh page in a fresh browser context.

        Raises:
            ProtocolError: If the endpoint refuses the connection or the page cannot be created.
        """
        browser = await self._connect_browser(host, port)
        try:
            context = await browser.new_context()
            page = await context.new_page()
            cdp = await context.new_cdp_session(page)
        except PlaywrightError as e:
            await browser.close()
            raise ProtocolError(f"Failed to open a page on {host}:{port}: {e.message}") from e
        return EngineSession(cdp, browser=browser, context=context, page=page)

    async def get_version(self, host: str, port: int) -> Dict[str, Any]:
        """Queries `Browser.getVersion` over a short-lived browser-level session."""
        browser = await self._connect_browser(host, port)
        try:
            session = await browser.new_browser_cdp_session()
            version = await session.send("Browser.getVersion")
            await session.detach()
            return version
        except PlaywrightError as e:
            raise ProtocolError(f"Browser.getVersion failed: {e.message}") from e
        finally:
            await browser.close()

    async def check_engine_version(self, host: str, port: int, timeout_ms: int,
                                   poll_interval_ms: int = POLL_INTERVAL_MS) -> Optional[Dict[str, Any]]:
        """
        Fetches the engine version, retrying until `timeout_ms` is spent and then once more.

        Issues a `CompatibilityWarning` when the product is a known-broken release.

        Returns:
            Optional[Dict[str, Any]]: The version payload, or None if it could not be fetched.
                                      A failed check never fails the connection.
        """
        deadline = time.monotonic() + timeout_ms / 1000
        version: Optional[Dict[str, Any]] = None
        while time.monotonic() < deadline:
            try:
                version = await self.get_version(host, port)
                break
            except ProtocolError as e:
                logger.debug(f"Version check attempt failed, retrying: {e.message}")
                await asyncio.sleep(poll_interval_ms / 1000)
        if version is None:
            try:
                version = await self.get_version(host, port)
            except ProtocolError as e:
                logger.warning(f"Engine version check failed: {e.message}")
                return None

        if is_known_broken(version.get("product", "")):
            warnings.warn(
                f"Engine {version.get('product')} has a known-broken remote API; rendering may hang.",
                CompatibilityWarning,
                stacklevel=2,
            )
        return version
