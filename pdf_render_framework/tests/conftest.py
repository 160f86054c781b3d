import asyncio
from collections import defaultdict

import pytest


class FakeSession:
    """
    In-memory stand-in for `EngineSession`.

    `responses` maps a protocol method to the result `send` returns: a dict, an
    exception instance to raise, or a callable taking the params (its return
    value is used as the result). Tests push engine events with `emit` or
    `emit_later`.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.sent = []
        self.handlers = defaultdict(list)
        self.waiters = {}
        self.closed = False

    @property
    def methods(self):
        return [method for method, _ in self.sent]

    def params_for(self, method):
        return [params for m, params in self.sent if m == method]

    async def send(self, method, params=None):
        params = params or {}
        self.sent.append((method, params))
        response = self.responses.get(method, {})
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = response(params)
        return response

    def on(self, event, handler):
        self.handlers[event].append(handler)

    def off(self, event, handler):
        if handler in self.handlers[event]:
            self.handlers[event].remove(handler)

    def emit(self, event, params=None):
        for handler in list(self.handlers[event]):
            handler(params or {})

    def emit_later(self, delay_s, event, params=None):
        asyncio.get_running_loop().call_later(delay_s, self.emit, event, params)

    def fail_later(self, delay_s, event, exc):
        def _fail():
            future = self.waiters.get(event)
            if future is not None and not future.done():
                future.set_exception(exc)
        asyncio.get_running_loop().call_later(delay_s, _fail)

    def wait_for_event(self, event):
        future = asyncio.get_running_loop().create_future()

        def _handler(params):
            self.off(event, _handler)
            if not future.done():
                future.set_result(params)

        self.on(event, _handler)
        self.waiters[event] = future
        return future

    async def close(self):
        self.closed = True


@pytest.fixture
def session():
    """A fresh FakeSession with no canned responses."""
    return FakeSession()
