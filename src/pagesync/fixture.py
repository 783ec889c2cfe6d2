"""Playwright test fixture for a client-rendered app served at ``base_url``."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from .config import SyncConfig
from .errors import ElementNotFound
from .page_ready import HydrationPoller
from .responses import UrlFilter, collect_data_responses, collect_responses
from .settlement import do_and_wait

T = TypeVar("T")

OUTER_HTML_SCRIPT = "els => els.map(el => el.outerHTML).join('')"


class PlaywrightFixture:
    def __init__(self, page: Any, base_url: str, config: Optional[SyncConfig] = None) -> None:
        self.page = page
        self.base_url = base_url.rstrip("/")
        self.config = config or SyncConfig()

    def _url(self, href: str) -> str:
        return self.base_url + href

    async def _click(self, el: Any, wait: bool) -> None:
        if wait:
            await do_and_wait(self.page, el.click, config=self.config)
        else:
            await el.click()

    async def goto(self, href: str, wait_for_hydration: bool = False) -> Any:
        """Visit ``href`` with a document request.

        ``wait_for_hydration`` waits for network idle, so everything should
        be loaded and ready to go.
        """
        return await self.page.goto(
            self._url(href),
            wait_until="networkidle" if wait_for_hydration else None,
        )

    async def wait_for_url(self, href: str, wait_for_hydration: bool = False) -> None:
        await self.page.wait_for_url(
            self._url(href),
            wait_until="networkidle" if wait_for_hydration else None,
        )

    async def click_link(self, href: str, wait: bool = True) -> None:
        selector = f'a[href="{href}"]'
        el = await self.page.query_selector(selector)
        if el is None:
            raise ElementNotFound(selector, f"Could not find link for {selector}")
        await self._click(el, wait)

    async def upload_file(self, input_selector: str, *file_paths: str) -> None:
        el = await self.page.query_selector(input_selector)
        if el is None:
            raise ElementNotFound(input_selector, f"Could not find input for: {input_selector}")
        await el.set_input_files(list(file_paths))

    async def click_submit_button(self, action: str, wait: bool = True, method: Optional[str] = None) -> None:
        """Click the first submit button whose formAction matches ``action``.

        Falls back to a submit button inside ``form[action=...]``.
        """
        method_attr = f'[formMethod="{method}"]' if method else ""
        selector = f'button[formAction="{action}"]{method_attr}'
        el = await self.page.query_selector(selector)
        if el is None:
            selector = f'form[action="{action}"] button[type="submit"]{method_attr}'
            el = await self.page.query_selector(selector)
            if el is None:
                raise ElementNotFound(selector, f"Can't find button for: {action}")
        await self._click(el, wait)

    async def click_element(self, selector: str) -> None:
        el = await self.page.query_selector(selector)
        if el is None:
            raise ElementNotFound(selector)
        await self._click(el, wait=True)

    async def wait_for_network_after(
        self,
        fn: Callable[[], Awaitable[T]],
        long_poll_allowance: Optional[int] = None,
    ) -> T:
        """Perform any interaction and wait for the network to settle.

            await app.wait_for_network_after(lambda: app.page.focus("#el"))
        """
        return await do_and_wait(self.page, fn, long_polls=long_poll_allowance, config=self.config)

    async def go_back(self, wait: bool = True) -> None:
        if wait:
            await do_and_wait(self.page, self.page.go_back, config=self.config)
        else:
            await self.page.go_back()

    def collect_responses(self, url_filter: Optional[UrlFilter] = None) -> List[Any]:
        return collect_responses(self.page, url_filter)

    def collect_data_responses(self) -> List[Any]:
        """Collect loader data responses (``?_data=...``), e.g. after a link click."""
        return collect_data_responses(self.page)

    async def get_html(self, selector: Optional[str] = None) -> str:
        if selector is None:
            return await self.page.content()
        return await self.page.eval_on_selector_all(selector, OUTER_HTML_SCRIPT)

    async def is_ready(self) -> bool:
        return await HydrationPoller(self.page, self.config).await_ready()
