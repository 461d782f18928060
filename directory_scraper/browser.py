"""Scoped headless browser session for one fetch cycle."""

from enum import Enum
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright
import structlog

from .errors import (
    LaunchError,
    NavigationError,
    ReadinessTimeoutError,
    ScrapeError,
    categorize_navigation_error,
)
from .models import BrowserOptions
from .stealth import apply_stealth, get_context_options, get_launch_args

logger = structlog.get_logger(__name__).bind(service="scraper")


class SessionState(str, Enum):
    """Lifecycle of a browser session."""

    CREATED = "created"
    LAUNCHED = "launched"
    NAVIGATED = "navigated"
    READY = "ready"
    CLOSED = "closed"


class BrowserSession:
    """
    One browser process, one context, one page.

    Use as an async context manager so the browser is torn down on every
    exit path:

        async with BrowserSession(options) as session:
            await session.navigate(url)
            await session.wait_for_selector(".listing")
            html = await session.content()
    """

    def __init__(self, options: Optional[BrowserOptions] = None, playwright_factory=async_playwright):
        self.options = options or BrowserOptions()
        self.state = SessionState.CREATED
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    async def __aenter__(self) -> "BrowserSession":
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def url(self) -> Optional[str]:
        """URL of the loaded page after redirects."""
        return self._page.url if self._page is not None else None

    async def launch(self) -> None:
        """
        Start the browser and open a page.

        Raises:
            LaunchError: If any part of the launch fails (session is closed)
        """
        if self.state != SessionState.CREATED:
            raise ScrapeError(f"Cannot launch session in state {self.state.value}")

        try:
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.options.headless,
                args=get_launch_args(self.options.stealth, self.options.extra_args),
            )
            self._context = await self._browser.new_context(
                **get_context_options(self.options.stealth)
            )
            self._page = await self._context.new_page()
            if self.options.stealth:
                await apply_stealth(self._page)
        except Exception as e:
            logger.error("browser_launch_failed", error=str(e))
            await self.close()
            raise LaunchError(f"Browser launch failed: {e}") from e
        except BaseException:
            # Cancelled mid-launch: release whatever already started
            logger.warning("browser_launch_interrupted")
            await self.close()
            raise

        self.state = SessionState.LAUNCHED
        logger.debug(
            "browser_launched",
            headless=self.options.headless,
            stealth=self.options.stealth,
        )

    async def navigate(self, url: str) -> None:
        """
        Load ``url`` and wait for the configured readiness event.

        Args:
            url: Absolute URL to load

        Raises:
            NavigationError: On network, DNS, timeout or invalid-URL failures
        """
        self._require_page()
        try:
            response = await self._page.goto(
                url,
                wait_until=self.options.wait_until,
                timeout=self.options.navigation_timeout_ms,
            )
        except PlaywrightError as e:
            error_msg = str(e)
            error_type = categorize_navigation_error(error_msg)
            logger.warning("navigation_failed", url=url, error=error_msg, error_type=error_type)
            raise NavigationError(f"Navigation to {url} failed: {error_msg}", error_type) from e

        self.state = SessionState.NAVIGATED
        logger.debug(
            "page_navigated",
            url=url,
            final_url=self._page.url,
            status=response.status if response is not None else None,
        )

    async def wait_for_selector(self, selector: str, timeout_ms: Optional[int] = None) -> None:
        """
        Block until an element matching ``selector`` is attached.

        Args:
            selector: CSS selector to wait for
            timeout_ms: Override for the configured selector timeout

        Raises:
            ReadinessTimeoutError: If nothing matched within the timeout
        """
        self._require_page()
        timeout = timeout_ms if timeout_ms is not None else self.options.selector_timeout_ms
        try:
            await self._page.wait_for_selector(selector, state="attached", timeout=timeout)
        except PlaywrightTimeoutError as e:
            logger.warning("readiness_timeout", selector=selector, timeout_ms=timeout)
            raise ReadinessTimeoutError(
                f"Timed out after {timeout} ms waiting for '{selector}'"
            ) from e
        except PlaywrightError as e:
            raise ScrapeError(f"Waiting for '{selector}' failed: {e}", "browser_error") from e

        self.state = SessionState.READY

    async def content(self) -> str:
        """Return the rendered HTML of the current page."""
        self._require_page()
        try:
            return await self._page.content()
        except PlaywrightError as e:
            raise ScrapeError(f"Reading page content failed: {e}", "browser_error") from e

    async def close(self) -> None:
        """Tear down page, context, browser and driver. Safe to call twice."""
        if self.state == SessionState.CLOSED:
            return

        for name, closer in (
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as e:
                logger.warning("browser_close_failed", resource=name, error=str(e))

        self._page = self._context = self._browser = self._playwright = None
        self.state = SessionState.CLOSED
        logger.debug("browser_closed")

    def _require_page(self) -> None:
        if self._page is None or self.state == SessionState.CLOSED:
            raise ScrapeError(f"No open page (session {self.state.value})", "browser_error")
