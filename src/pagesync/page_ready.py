"""Page hydration readiness for client-rendered apps.

Prefer polling for an explicit ready marker over fixed sleeps. The app sets
the marker (``[data-ready]`` by default) once its client code has attached;
until then clicks may land on server-rendered markup with no handlers.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from playwright.async_api import Error as PlaywrightError

from .config import SyncConfig
from .errors import HydrationTimeout
from .events import PageChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryBudget:
    max_attempts: int = 5
    base_timeout_ms: int = 20000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_timeout_ms < 1:
            raise ValueError("base_timeout_ms must be >= 1")

    def attempts(self) -> Iterator[int]:
        return iter(range(1, self.max_attempts + 1))

    def timeout_ms(self, attempt: int) -> int:
        return self.base_timeout_ms * attempt

    def is_last(self, attempt: int) -> bool:
        return attempt >= self.max_attempts


class HydrationPoller:
    def __init__(self, page: Any, config: Optional[SyncConfig] = None) -> None:
        self.channel = PageChannel(page)
        self.config = config or SyncConfig()

    async def await_ready(
        self,
        max_attempts: Optional[int] = None,
        base_timeout_ms: Optional[int] = None,
    ) -> bool:
        """Wait for the ready marker, reloading the page between failed attempts.

        Args:
            max_attempts: Attempt budget (default from config, 5).
            base_timeout_ms: Marker timeout of the first attempt; attempt n
                waits ``base_timeout_ms * n``.

        Returns:
            True once the page is ready.

        Raises:
            HydrationTimeout: every attempt failed. The page is not reloaded
                after the last one.

        Only Playwright errors (timeouts, detached or closed pages) count as
        a failed attempt. Any other exception from the check propagates at
        once, without a reload, and the attempt budget is not used up.
        """
        budget = RetryBudget(
            max_attempts=self.config.max_attempts if max_attempts is None else max_attempts,
            base_timeout_ms=self.config.base_timeout_ms if base_timeout_ms is None else base_timeout_ms,
        )

        for attempt in budget.attempts():
            timeout_ms = budget.timeout_ms(attempt)
            logger.debug("hydration attempt %d/%d (timeout=%dms)", attempt, budget.max_attempts, timeout_ms)
            try:
                await self._ready_check(timeout_ms)
            except PlaywrightError as exc:
                if budget.is_last(attempt):
                    logger.debug("hydration attempt %d failed, giving up: %s", attempt, exc)
                    break
                if self.config.debug:
                    logger.info("Something went wrong during the page hydration, reloading the page")
                await self.channel.reload()
                continue

            # Give suspense boundaries time to drop their hidden/loading state.
            await asyncio.sleep(self.config.settle_delay_ms / 1000)
            return True

        raise HydrationTimeout(budget.max_attempts)

    async def _ready_check(self, timeout_ms: int) -> None:
        await self.channel.wait_for_load_state("networkidle")
        await self.channel.wait_for_load_state("load")
        await self.channel.wait_for_selector_attached(self.config.ready_selector, timeout_ms)


async def wait_ready(
    page: Any,
    config: Optional[SyncConfig] = None,
    max_attempts: Optional[int] = None,
    base_timeout_ms: Optional[int] = None,
) -> bool:
    """Functional form of ``HydrationPoller(page, config).await_ready(...)``."""
    poller = HydrationPoller(page, config)
    return await poller.await_ready(max_attempts=max_attempts, base_timeout_ms=base_timeout_ms)
