"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from directory_scraper.models import (
    ExtractionSchema,
    PaginationConfig,
    PaginationMode,
    SiteProfile,
)


LISTING_HTML = """
<!DOCTYPE html>
<html>
<body>
    <div class="company--details">3 results</div>
    <article class="row">
        <h2 class="article--title">  Acme Plumbing  </h2>
        <a data-type="company--website" href="https://acme.example">Website</a>
        <div class="company--emails"><a href="mailto:info@acme.example"> info@acme.example </a></div>
        <div class="company--phones">
            <a href="tel:+4711111111"> +47 11 11 11 11 </a>
            <a href="tel:+4722222222">+47 22 22 22 22</a>
        </div>
        <p class="company--address">Main Street 1, Oslo</p>
    </article>
    <article class="row">
        <h2 class="article--title">Bolt Electric</h2>
        <p class="company--address">   </p>
    </article>
    <article class="row">
        <h2 class="article--title">   </h2>
        <a data-type="company--website" href="  ">Website</a>
        <div class="company--phones">
            <a href="tel:"> </a>
            <a href="tel:+4733333333">+47 33 33 33 33</a>
        </div>
    </article>
    <div class="pagination">
        <a href="?page=1">1</a>
        <a class="next" href="?page=2">Next</a>
    </div>
</body>
</html>
"""

LAST_PAGE_HTML = """
<html>
<body>
    <div class="company--details">1 result</div>
    <article class="row">
        <h2 class="article--title">Zeta Roofing</h2>
    </article>
    <div class="pagination"><span class="current">9</span></div>
</body>
</html>
"""

EMPTY_PAGE_HTML = """
<html>
<body>
    <div class="company--details">0 results</div>
</body>
</html>
"""


COMPANY_SCHEMA = {
    "companyName": "h2.article--title",
    "website": {
        "selector": "a[data-type='company--website']",
        "source": "attribute",
        "attribute": "href",
    },
    "email": ".company--emails a",
    "phones": {
        "selector": ".company--phones a[href^='tel:']",
        "join_all": True,
    },
    "address": ".company--address",
}


@pytest.fixture
def listing_html():
    """Listing page with three entries and a next-page link."""
    return LISTING_HTML


@pytest.fixture
def company_schema():
    """Schema with the five boundary fields."""
    return ExtractionSchema.from_mapping(COMPANY_SCHEMA)


def make_profile(mode=PaginationMode.COUNTER, ready_selector=".company--details"):
    return SiteProfile(
        name="test_directory",
        container_selector="article.row",
        ready_selector=ready_selector,
        extraction_schema=ExtractionSchema.from_mapping(COMPANY_SCHEMA),
        pagination=PaginationConfig(
            mode=mode,
            next_selector=".pagination a.next",
            indicator_selector=".pagination a[href*='?page=']",
        ),
    )


@pytest.fixture
def counter_profile():
    return make_profile(PaginationMode.COUNTER)


@pytest.fixture
def anchor_profile():
    return make_profile(PaginationMode.URL_ANCHOR)


class FakeSession:
    """Stand-in for BrowserSession that serves canned HTML."""

    def __init__(self, browser, options):
        self.browser = browser
        self.options = options
        self.url = None

    async def __aenter__(self):
        self.browser.launches += 1
        if self.browser.launch_error is not None:
            raise self.browser.launch_error
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.browser.closes += 1

    async def navigate(self, url):
        self.browser.visited.append(url)
        if self.browser.navigate_delay:
            await asyncio.sleep(self.browser.navigate_delay)
        if self.browser.navigate_error is not None:
            raise self.browser.navigate_error
        self.url = url

    async def wait_for_selector(self, selector, timeout_ms=None):
        self.browser.waited_for.append(selector)
        if self.browser.ready_error is not None:
            raise self.browser.ready_error

    async def content(self):
        return self.browser.pages.get(self.url, self.browser.default_html)


class FakeBrowser:
    """Session factory that counts launches and teardowns."""

    def __init__(self, pages=None, default_html=LISTING_HTML):
        self.pages = pages or {}
        self.default_html = default_html
        self.launches = 0
        self.closes = 0
        self.visited = []
        self.waited_for = []
        self.launch_error = None
        self.navigate_error = None
        self.ready_error = None
        self.navigate_delay = 0.0

    def __call__(self, options):
        return FakeSession(self, options)


@pytest.fixture
def fake_browser():
    return FakeBrowser()
