"""Tests for the scrape orchestrator."""

import asyncio

import pytest

from conftest import EMPTY_PAGE_HTML, LAST_PAGE_HTML, FakeBrowser, make_profile
from directory_scraper.errors import (
    LaunchError,
    NavigationError,
    ReadinessTimeoutError,
    ScrapeCancelledError,
    ValidationError,
)
from directory_scraper.models import Continuation, Exhausted, PaginationMode
from directory_scraper.scraper import ScrapeOrchestrator


class TestValidation:
    """Input validation happens before any browser launch."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not-a-url", "", "   ", None, "ftp://x.example/list", "/relative/path"])
    async def test_invalid_url_never_launches(self, fake_browser, counter_profile, url):
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        with pytest.raises(ValidationError):
            await orchestrator.fetch(url)

        assert fake_browser.launches == 0

    @pytest.mark.asyncio
    async def test_page_below_one_rejected(self, fake_browser, counter_profile):
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        with pytest.raises(ValidationError):
            await orchestrator.fetch("https://x.example/list", 0)

        assert fake_browser.launches == 0

    def test_validation_message(self, fake_browser, counter_profile):
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        with pytest.raises(ValidationError, match="A valid URL is required."):
            orchestrator.build_request("not-a-url")


class TestFetch:
    """Test a single fetch cycle."""

    @pytest.mark.asyncio
    async def test_counter_mode_fetch(self, fake_browser, counter_profile):
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        result = await orchestrator.fetch("https://x.example/list", 3)

        assert fake_browser.visited == ["https://x.example/list?page=3"]
        assert fake_browser.waited_for == [".company--details"]
        assert len(result.records) == 3
        assert result.records[0]["companyName"] == "Acme Plumbing"
        assert result.pagination == Continuation(next_target=4)
        assert result.next_page == 4
        assert result.page == 3
        assert fake_browser.launches == 1
        assert fake_browser.closes == 1

    @pytest.mark.asyncio
    async def test_default_page_is_one(self, fake_browser, counter_profile):
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        result = await orchestrator.fetch("https://x.example/list")

        assert fake_browser.visited == ["https://x.example/list?page=1"]
        assert result.next_page == 2

    @pytest.mark.asyncio
    async def test_url_anchor_mode_fetch(self, fake_browser, anchor_profile):
        orchestrator = ScrapeOrchestrator(anchor_profile, session_factory=fake_browser)

        result = await orchestrator.fetch("https://x.example/list?sort=name")

        assert fake_browser.visited == ["https://x.example/list?sort=name"]
        assert result.pagination == Continuation(next_target="https://x.example/list?page=2")

    @pytest.mark.asyncio
    async def test_last_page_is_exhausted(self, counter_profile):
        browser = FakeBrowser(default_html=LAST_PAGE_HTML)
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=browser)

        result = await orchestrator.fetch("https://x.example/list", 9)

        assert result.pagination == Exhausted()
        assert result.next_page is None
        assert result.records == [
            {
                "companyName": "Zeta Roofing",
                "website": "N/A",
                "email": "N/A",
                "phones": "N/A",
                "address": "N/A",
            }
        ]

    @pytest.mark.asyncio
    async def test_empty_page_is_success(self, counter_profile):
        """Zero fragments on a loaded page is an empty result, not an error."""
        browser = FakeBrowser(default_html=EMPTY_PAGE_HTML)
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=browser)

        result = await orchestrator.fetch("https://x.example/list")

        assert result.records == []
        assert result.pagination == Exhausted()

    @pytest.mark.asyncio
    async def test_no_ready_selector_skips_wait(self, fake_browser):
        profile = make_profile(PaginationMode.COUNTER, ready_selector=None)
        orchestrator = ScrapeOrchestrator(profile, session_factory=fake_browser)

        await orchestrator.fetch("https://x.example/list")

        assert fake_browser.waited_for == []


class TestFailures:
    """Every failure path tears the session down."""

    @pytest.mark.asyncio
    async def test_navigation_error(self, fake_browser, counter_profile):
        fake_browser.navigate_error = NavigationError("net::ERR_CONNECTION_REFUSED", "connection_refused")
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        with pytest.raises(NavigationError):
            await orchestrator.fetch("https://x.example/list")

        assert fake_browser.launches == 1
        assert fake_browser.closes == 1

    @pytest.mark.asyncio
    async def test_readiness_timeout(self, fake_browser, counter_profile):
        fake_browser.ready_error = ReadinessTimeoutError("Timed out")
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        with pytest.raises(ReadinessTimeoutError):
            await orchestrator.fetch("https://x.example/list")

        assert fake_browser.closes == 1

    @pytest.mark.asyncio
    async def test_launch_error(self, fake_browser, counter_profile):
        fake_browser.launch_error = LaunchError("no browser")
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        with pytest.raises(LaunchError):
            await orchestrator.fetch("https://x.example/list")

        assert fake_browser.visited == []


class TestCancellation:
    """Deadlines and cancel events force teardown."""

    @pytest.mark.asyncio
    async def test_deadline_exceeded(self, fake_browser, counter_profile):
        fake_browser.navigate_delay = 5.0
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        with pytest.raises(ScrapeCancelledError) as exc_info:
            await orchestrator.fetch("https://x.example/list", deadline=0.05)

        assert exc_info.value.error_type == "deadline_exceeded"
        assert fake_browser.launches == 1
        assert fake_browser.closes == 1

    @pytest.mark.asyncio
    async def test_default_deadline_from_constructor(self, fake_browser, counter_profile):
        fake_browser.navigate_delay = 5.0
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser, deadline=0.05)

        with pytest.raises(ScrapeCancelledError):
            await orchestrator.fetch("https://x.example/list")

        assert fake_browser.closes == 1

    @pytest.mark.asyncio
    async def test_cancel_event(self, fake_browser, counter_profile):
        fake_browser.navigate_delay = 5.0
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)
        cancel_event = asyncio.Event()

        async def cancel_soon():
            await asyncio.sleep(0.05)
            cancel_event.set()

        canceller = asyncio.ensure_future(cancel_soon())
        with pytest.raises(ScrapeCancelledError) as exc_info:
            await orchestrator.fetch("https://x.example/list", cancel_event=cancel_event)
        await canceller

        assert exc_info.value.error_type == "cancelled"
        assert fake_browser.closes == 1

    @pytest.mark.asyncio
    async def test_completes_within_deadline(self, fake_browser, counter_profile):
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        result = await orchestrator.fetch(
            "https://x.example/list", deadline=5.0, cancel_event=asyncio.Event()
        )

        assert len(result.records) == 3
        assert fake_browser.closes == 1


class TestWalk:
    """Test following continuations across pages."""

    @pytest.mark.asyncio
    async def test_counter_walk_stops_when_exhausted(self, counter_profile):
        browser = FakeBrowser(pages={"https://x.example/list?page=3": LAST_PAGE_HTML})
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=browser)

        results = [r async for r in orchestrator.walk("https://x.example/list")]

        assert [r.page for r in results] == [1, 2, 3]
        assert browser.visited == [
            "https://x.example/list?page=1",
            "https://x.example/list?page=2",
            "https://x.example/list?page=3",
        ]
        assert results[-1].next_page is None
        assert browser.launches == browser.closes == 3

    @pytest.mark.asyncio
    async def test_walk_respects_max_pages(self, fake_browser, counter_profile):
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=fake_browser)

        results = [r async for r in orchestrator.walk("https://x.example/list", max_pages=2)]

        assert len(results) == 2
        assert results[-1].next_page == 3

    @pytest.mark.asyncio
    async def test_counter_walk_stops_on_empty_page(self, counter_profile):
        """A page past the end still links back, so zero records ends the walk."""
        past_end = (
            "<html><body><div class='company--details'>0 results</div>"
            "<div class='pagination'><a href='?page=9'>Previous</a></div></body></html>"
        )
        browser = FakeBrowser(pages={"https://x.example/list?page=2": past_end})
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=browser)

        results = [r async for r in orchestrator.walk("https://x.example/list")]

        assert [r.page for r in results] == [1, 2]
        assert results[-1].records == []
        assert browser.launches == 2

    @pytest.mark.asyncio
    async def test_walk_resumes_from_page(self, counter_profile):
        browser = FakeBrowser(default_html=LAST_PAGE_HTML)
        orchestrator = ScrapeOrchestrator(counter_profile, session_factory=browser)

        results = [r async for r in orchestrator.walk("https://x.example/list", page=7)]

        assert browser.visited == ["https://x.example/list?page=7"]
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_anchor_walk_follows_urls(self, anchor_profile):
        page_two = LAST_PAGE_HTML
        browser = FakeBrowser(pages={"https://x.example/list?page=2": page_two})
        orchestrator = ScrapeOrchestrator(anchor_profile, session_factory=browser)

        results = [r async for r in orchestrator.walk("https://x.example/list")]

        assert browser.visited == ["https://x.example/list", "https://x.example/list?page=2"]
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_anchor_walk_stops_on_loop(self, anchor_profile):
        """A next link pointing back at a visited page ends the walk."""
        browser = FakeBrowser()
        orchestrator = ScrapeOrchestrator(anchor_profile, session_factory=browser)

        results = [r async for r in orchestrator.walk("https://x.example/list?page=2")]

        assert browser.visited == ["https://x.example/list?page=2"]
        assert len(results) == 1
