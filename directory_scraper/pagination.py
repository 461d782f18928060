"""Resolve the next fetch target from a loaded listing page."""

from abc import ABC, abstractmethod
from typing import Optional, Union
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup, Tag
import structlog

from .models import (
    Continuation,
    Exhausted,
    PaginationConfig,
    PaginationMode,
    PaginationState,
)

logger = structlog.get_logger(__name__).bind(service="scraper")


def strip_query(url: str) -> str:
    """Drop query string and fragment from a URL."""
    parsed = urlparse(url)
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))


def build_page_url(base_url: str, page: int, page_param: str = "page") -> str:
    """
    Set the page query parameter on a base URL.

    Other query parameters are kept; an existing page parameter is replaced.

    Example:
        >>> build_page_url("https://example.com/list?city=oslo", 3)
        'https://example.com/list?city=oslo&page=3'
    """
    parsed = urlparse(base_url)
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != page_param]
    query.append((page_param, str(page)))
    return urlunparse(parsed._replace(query=urlencode(query), fragment=""))


class PaginationResolver(ABC):
    """Base class for pagination strategies.

    Resolvers only inspect the document they are given; they never navigate.
    """

    mode: PaginationMode

    @abstractmethod
    def resolve(
        self,
        document: Union[BeautifulSoup, Tag],
        current_url: str,
        current_page: int = 1,
    ) -> PaginationState:
        """Return Continuation when another page exists, else Exhausted."""


class UrlAnchorResolver(PaginationResolver):
    """Follow the href of the first "next page" control."""

    mode = PaginationMode.URL_ANCHOR

    def __init__(self, next_selector: str, placeholder_hrefs: Optional[list[str]] = None):
        self.next_selector = next_selector
        self.placeholder_hrefs = set(placeholder_hrefs if placeholder_hrefs is not None else ["#", ""])

    def resolve(self, document, current_url, current_page=1):
        control = document.select_one(self.next_selector)
        if control is None:
            logger.debug("next_control_not_found", selector=self.next_selector)
            return Exhausted()

        href = control.get("href")
        if href is None:
            return Exhausted()
        href = href.strip()
        if href in self.placeholder_hrefs or href.lower().startswith("javascript:"):
            logger.debug("next_control_placeholder", href=href)
            return Exhausted()

        try:
            next_url = urljoin(strip_query(current_url), href)
        except ValueError as e:
            logger.warning("next_url_resolution_failed", href=href, error=str(e))
            return Exhausted()

        if urlparse(next_url).scheme not in ("http", "https"):
            logger.warning("next_url_not_http", href=href, next_url=next_url)
            return Exhausted()

        return Continuation(next_target=next_url)


class CounterResolver(PaginationResolver):
    """Increment the page number while a pagination indicator exists."""

    mode = PaginationMode.COUNTER

    def __init__(self, indicator_selector: str):
        self.indicator_selector = indicator_selector

    def resolve(self, document, current_url, current_page=1):
        if document.select_one(self.indicator_selector) is None:
            return Exhausted()
        return Continuation(next_target=current_page + 1)


def build_resolver(config: PaginationConfig) -> PaginationResolver:
    """Create the resolver selected by configuration."""
    if config.mode == PaginationMode.URL_ANCHOR:
        return UrlAnchorResolver(config.next_selector, list(config.placeholder_hrefs))
    if config.mode == PaginationMode.COUNTER:
        return CounterResolver(config.indicator_selector)
    raise ValueError(f"Unsupported pagination mode: {config.mode}")
