from __future__ import annotations

from typing import Any, Callable, List, Optional
from urllib.parse import SplitResult, parse_qs, urlsplit

from .events import RESPONSE

UrlFilter = Callable[[SplitResult], bool]


def collect_responses(page: Any, url_filter: Optional[UrlFilter] = None) -> List[Any]:
    """Return a list that fills with the page's responses as they arrive.

    The listener stays registered for the life of the page.
    """
    responses: List[Any] = []

    def on_response(response: Any) -> None:
        if url_filter is None or url_filter(urlsplit(response.url)):
            responses.append(response)

    page.on(RESPONSE, on_response)
    return responses


def is_data_request(url: SplitResult) -> bool:
    return "_data" in parse_qs(url.query, keep_blank_values=True)


def collect_data_responses(page: Any) -> List[Any]:
    return collect_responses(page, is_data_request)
