"""Wait for the network to settle after a user action.

The detector counts requests the page starts while an action runs and only
returns once the action is done and every counted request has finished,
less an allowance for long-lived connections (live reload sockets, long
polls). Finished requests are released one page tick late so that response
handlers which fire follow-up requests are counted before the slot frees up.

There is no timeout here. An action that leaves a request open forever
suspends the caller until its own test timeout cancels it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Set, TypeVar

from .config import SyncConfig
from .events import REQUEST_FAILED, REQUEST_FINISHED, REQUEST_STARTED, PageChannel, SettleSignal

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SettlementState:
    long_poll_allowance: int = 0
    action_done: bool = False
    pending: Set[Any] = field(default_factory=set)

    @property
    def pending_count(self) -> int:
        return len(self.pending)

    def is_settled(self) -> bool:
        return self.action_done and self.pending_count <= self.long_poll_allowance


class NetworkSettlementDetector:
    def __init__(self, page: Any, config: Optional[SyncConfig] = None) -> None:
        self.channel = PageChannel(page)
        self.config = config or SyncConfig()

    async def await_settlement(
        self,
        action: Callable[[], Awaitable[T]],
        long_poll_allowance: Optional[int] = None,
    ) -> T:
        """Run ``action`` once and return its result after the network settles.

        If ``action`` raises, the error propagates straight away; requests
        still in flight are not drained first.
        """
        allowance = self.config.long_poll_allowance if long_poll_allowance is None else long_poll_allowance
        if allowance < 0:
            raise ValueError("long_poll_allowance must be >= 0")

        state = SettlementState(long_poll_allowance=allowance)
        signal = SettleSignal()
        releases: Set[asyncio.Task] = set()
        debug = self.config.debug

        def maybe_settle() -> None:
            if state.is_settled():
                signal.fire()

        def on_request(request: Any) -> None:
            if request in state.pending:
                return
            state.pending.add(request)
            if debug:
                logger.info("+[%d]: %s", state.pending_count, request.url)

        def on_request_done(request: Any) -> None:
            if request not in state.pending:
                return
            task = asyncio.ensure_future(self._release(state, request, maybe_settle))
            releases.add(task)
            task.add_done_callback(releases.discard)

        handlers = {
            REQUEST_STARTED: on_request,
            REQUEST_FINISHED: on_request_done,
            REQUEST_FAILED: on_request_done,
        }
        with self.channel.subscribe(handlers):
            reporter = asyncio.ensure_future(self._report_pending(state)) if debug else None
            try:
                result = await action()
                state.action_done = True
                maybe_settle()
                if debug:
                    logger.info("action done, %d requests pending", state.pending_count)
                await signal.wait()
                if debug:
                    logger.info("action done, network settled")
            finally:
                if reporter is not None:
                    reporter.cancel()
                for task in list(releases):
                    task.cancel()
        return result

    async def _release(self, state: SettlementState, request: Any, on_change: Callable[[], None]) -> None:
        try:
            await self.channel.defer_tick(self.config.deferral_hops, self.config.deferral_delay_ms)
        except Exception as exc:  # noqa: BLE001
            # Usually the page navigated away mid-evaluate; the request is done either way.
            logger.debug("deferred tick failed for %s: %s", request.url, exc)
        state.pending.discard(request)
        on_change()
        if self.config.debug:
            logger.info("-[%d]: %s", state.pending_count, request.url)

    async def _report_pending(self, state: SettlementState) -> None:
        while True:
            await asyncio.sleep(self.config.diagnostics_interval_s)
            logger.info("%d requests pending:", state.pending_count)
            for request in list(state.pending):
                logger.info("  %s", request.url)


async def do_and_wait(
    page: Any,
    action: Callable[[], Awaitable[T]],
    long_polls: Optional[int] = None,
    config: Optional[SyncConfig] = None,
) -> T:
    detector = NetworkSettlementDetector(page, config)
    return await detector.await_settlement(action, long_poll_allowance=long_polls)
