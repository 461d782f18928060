"""Fetch-extract-paginate orchestrator."""

import asyncio
import time
from typing import AsyncIterator, Callable, Optional

from pydantic import ValidationError as PydanticValidationError
import structlog

from .browser import BrowserSession
from .errors import ScrapeCancelledError, ScrapeError, ValidationError
from .extractor import RecordSetExtractor, parse_html
from .models import (
    BrowserOptions,
    FetchResult,
    PaginationMode,
    ScrapeRequest,
    SiteProfile,
)
from .pagination import build_page_url, build_resolver

logger = structlog.get_logger(__name__).bind(service="scraper")


class ScrapeOrchestrator:
    """Run one scrape cycle per call: open session, load, extract, paginate, close."""

    def __init__(
        self,
        profile: SiteProfile,
        browser_options: Optional[BrowserOptions] = None,
        session_factory: Callable[[BrowserOptions], BrowserSession] = BrowserSession,
        deadline: Optional[float] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            profile: Site layout (selectors, schema, pagination strategy)
            browser_options: Options handed to every new browser session
            session_factory: Builds a session from options (swap for tests)
            deadline: Default per-cycle deadline in seconds (None = no limit)
        """
        self.profile = profile
        self.browser_options = browser_options or BrowserOptions()
        self.session_factory = session_factory
        self.deadline = deadline
        self.extractor = RecordSetExtractor()
        self.resolver = build_resolver(profile.pagination)

        logger.info(
            "orchestrator_initialized",
            profile=profile.name,
            pagination_mode=profile.pagination.mode.value,
            deadline=deadline,
        )

    def build_request(self, target_url, page=None) -> ScrapeRequest:
        """
        Validate caller input.

        Raises:
            ValidationError: On a missing or malformed URL or a page below 1
        """
        if not isinstance(target_url, str) or not target_url.strip():
            raise ValidationError("A valid URL is required.")
        try:
            return ScrapeRequest(url=target_url, page=1 if page is None else page)
        except PydanticValidationError as e:
            message = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
            raise ValidationError(message) from e

    def page_url(self, request: ScrapeRequest) -> str:
        """URL to load for a request under the configured pagination mode."""
        if self.profile.pagination.mode == PaginationMode.COUNTER:
            return build_page_url(request.url, request.page, self.profile.pagination.page_param)
        return request.url

    async def fetch(
        self,
        target_url: str,
        page: Optional[int] = None,
        *,
        deadline: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FetchResult:
        """
        Fetch one listing page.

        Args:
            target_url: Absolute http(s) URL (or a continuation URL)
            page: Page number for counter mode (default 1)
            deadline: Seconds before the cycle is cancelled
            cancel_event: Setting this event cancels the cycle

        Returns:
            FetchResult with records and pagination state

        Raises:
            ValidationError: Before any browser launch, on bad input
            ScrapeError: Launch, navigation, readiness or cancellation failures
        """
        request = self.build_request(target_url, page)

        deadline = deadline if deadline is not None else self.deadline
        if deadline is None and cancel_event is None:
            return await self._run_cycle(request)
        return await self._run_guarded(request, deadline, cancel_event)

    async def walk(
        self,
        target_url: str,
        page: int = 1,
        max_pages: Optional[int] = None,
        **fetch_kwargs,
    ) -> AsyncIterator[FetchResult]:
        """
        Follow continuations, yielding one FetchResult per page.

        Resume from any point by passing a previous continuation as
        ``target_url`` (URL-anchor mode) or ``page`` (counter mode).
        """
        url = target_url
        current = page
        fetched = 0
        seen_urls = set()

        while True:
            result = await self.fetch(url, current, **fetch_kwargs)
            seen_urls.add(result.url)
            fetched += 1
            yield result

            next_target = result.next_page
            if next_target is None:
                return
            if max_pages is not None and fetched >= max_pages:
                logger.info("max_pages_reached", max_pages=max_pages)
                return

            if isinstance(next_target, int):
                # Counter indicators also match "previous" links past the end
                if not result.records:
                    logger.info("empty_page_ends_walk", page=result.page)
                    return
                current = next_target
            else:
                if next_target in seen_urls:
                    logger.warning("pagination_loop_detected", url=next_target)
                    return
                url = next_target
                current += 1

    async def _run_guarded(
        self,
        request: ScrapeRequest,
        deadline: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> FetchResult:
        """Run a cycle that is torn down when the deadline or cancel event fires."""
        cycle = asyncio.ensure_future(self._run_cycle(request))
        waiters = {cycle}
        stopper = None
        if cancel_event is not None:
            stopper = asyncio.ensure_future(cancel_event.wait())
            waiters.add(stopper)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=deadline, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if stopper is not None:
                stopper.cancel()
            if not cycle.done():
                cycle.cancel()
                try:
                    await cycle
                except asyncio.CancelledError:
                    pass

        if cycle in done:
            return cycle.result()

        if cancel_event is not None and cancel_event.is_set():
            logger.warning("scrape_cancelled", url=request.url, page=request.page)
            raise ScrapeCancelledError("Scrape cancelled by caller", "cancelled")

        logger.warning("scrape_deadline_exceeded", url=request.url, page=request.page, deadline=deadline)
        raise ScrapeCancelledError(
            f"Scrape exceeded deadline of {deadline} seconds", "deadline_exceeded"
        )

    async def _run_cycle(self, request: ScrapeRequest) -> FetchResult:
        start_time = time.time()
        fetch_url = self.page_url(request)
        profile = self.profile

        logger.info("scrape_started", url=fetch_url, page=request.page, profile=profile.name)

        try:
            async with self.session_factory(self.browser_options) as session:
                await session.navigate(fetch_url)

                if profile.ready_selector:
                    await session.wait_for_selector(profile.ready_selector)

                html = await session.content()
                current_url = session.url or fetch_url

                document = parse_html(html)
                records = self.extractor.extract_all(
                    document, profile.container_selector, profile.extraction_schema
                )
                pagination = self.resolver.resolve(document, current_url, request.page)
                logger.debug(
                    "pagination_resolved",
                    mode=self.resolver.mode.value,
                    current_url=current_url,
                    state=type(pagination).__name__,
                )

        except ScrapeError as e:
            logger.error(
                "scrape_failed",
                url=fetch_url,
                page=request.page,
                error=str(e),
                error_type=e.error_type,
            )
            raise
        except Exception as e:
            logger.exception("scrape_failed_unexpectedly", url=fetch_url, error=str(e))
            raise ScrapeError(str(e)) from e

        duration_ms = int((time.time() - start_time) * 1000)
        result = FetchResult(
            records=records,
            pagination=pagination,
            url=fetch_url,
            page=request.page,
            duration_ms=duration_ms,
        )

        logger.info(
            "scrape_completed",
            url=fetch_url,
            page=request.page,
            records=len(records),
            next_page=result.next_page,
            duration_ms=duration_ms,
        )
        return result
