from __future__ import annotations


class PageSyncError(Exception):
    """Base class for errors raised by pagesync."""


class ElementNotFound(PageSyncError):
    def __init__(self, selector: str, message: str | None = None) -> None:
        self.selector = selector
        super().__init__(message or f"Can't find element for: {selector}")


class HydrationTimeout(PageSyncError):
    """The page never reported itself ready within the attempt budget.

    Treat the page as unusable; there is no partial result.
    """

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__("Page hydration failed")
