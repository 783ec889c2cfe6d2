"""Event-channel adapter over a Playwright async page.

The settlement detector and the hydration poller only talk to the page
through ``PageChannel``, which keeps the Playwright surface they rely on
small enough to fake in tests.
"""
from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Mapping, Tuple

REQUEST_STARTED = "request"
REQUEST_FINISHED = "requestfinished"
REQUEST_FAILED = "requestfailed"
RESPONSE = "response"

# Resolves after one setTimeout turn of the page's own event loop, so
# response handlers queued by the page get to run first.
DEFER_SCRIPT = "ms => new Promise(resolve => setTimeout(resolve, ms))"

Handler = Callable[[Any], None]


class SettleSignal:
    """One-shot completion flag. Firing more than once is a no-op."""

    def __init__(self) -> None:
        self._future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    @property
    def fired(self) -> bool:
        return self._future.done()

    def fire(self) -> bool:
        if self._future.done():
            return False
        self._future.set_result(None)
        return True

    async def wait(self) -> None:
        await self._future


class PageChannel:
    def __init__(self, page: Any) -> None:
        self.page = page

    @contextmanager
    def subscribe(self, handlers: Mapping[str, Handler]) -> Iterator[None]:
        """Register ``handlers`` for the duration of the block.

        Every handler that was registered is removed again on exit, whether
        the block returns, raises or is cancelled.
        """
        registered: List[Tuple[str, Handler]] = []
        try:
            for event, handler in handlers.items():
                self.page.on(event, handler)
                registered.append((event, handler))
            yield
        finally:
            for event, handler in registered:
                self.page.remove_listener(event, handler)

    async def defer_tick(self, hops: int = 1, delay_ms: int = 0) -> None:
        for _ in range(hops):
            await self.page.evaluate(DEFER_SCRIPT, delay_ms)

    async def wait_for_load_state(self, state: str) -> None:
        await self.page.wait_for_load_state(state)

    async def wait_for_selector_attached(self, selector: str, timeout_ms: int) -> None:
        await self.page.locator(selector).wait_for(state="attached", timeout=timeout_ms)

    async def reload(self) -> None:
        await self.page.reload()
