"""Test helpers: fake scheduler and local aiohttp server."""
from contextlib import asynccontextmanager
from typing import Any, Callable, List

from aiohttp import web
from aiohttp.test_utils import TestServer

from mxcontent.core.api import HttpApiConfig

UPLOAD_ROUTE = '/_matrix/media/r0/upload'


class FakeTimer:
    """Timer handle returned by FakeScheduler."""

    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manually advanced clock offering call_later like an event loop."""

    def __init__(self):
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable, *args) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float):
        target = self.now + seconds
        while True:
            due = sorted((t for t in self.pending if t.when <= target), key=lambda t: t.when)
            if not due:
                break
            timer = due[0]
            self.now = timer.when
            timer.fired = True
            timer.callback(*timer.args)
        self.now = target


@asynccontextmanager
async def serve(handler: Callable, route: str = UPLOAD_ROUTE, method: str = 'POST'):
    """Run an aiohttp test server answering ``route`` with ``handler``."""
    app = web.Application()
    app.router.add_route(method, route, handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


def server_config(server: TestServer, **kwargs: Any) -> HttpApiConfig:
    """Config pointing at a test server."""
    kwargs.setdefault('access_token', 'syt_secret')
    return HttpApiConfig(base_url=str(server.make_url('/')), **kwargs)
