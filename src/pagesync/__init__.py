"""pagesync: network settlement and hydration waits for Playwright e2e tests."""

__all__ = [
    "config",
    "errors",
    "events",
    "settlement",
    "page_ready",
    "responses",
    "fixture",
    "cli",
]
