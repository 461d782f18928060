"""DirectoryScraper - headless listing scraper with pagination."""

from .api import build_orchestrator, scrape_listing_direct
from .browser import BrowserSession
from .errors import (
    LaunchError,
    NavigationError,
    ReadinessTimeoutError,
    ScrapeCancelledError,
    ScrapeError,
    ValidationError,
)
from .extractor import FieldExtractor, RecordSetExtractor
from .models import (
    BrowserOptions,
    Continuation,
    Exhausted,
    ExtractionSchema,
    FetchResult,
    FieldRule,
    PaginationConfig,
    PaginationMode,
    SiteProfile,
)
from .pagination import CounterResolver, PaginationResolver, UrlAnchorResolver
from .scraper import ScrapeOrchestrator

__version__ = "0.1.0"

__all__ = [
    "BrowserOptions",
    "BrowserSession",
    "Continuation",
    "CounterResolver",
    "Exhausted",
    "ExtractionSchema",
    "FetchResult",
    "FieldExtractor",
    "FieldRule",
    "LaunchError",
    "NavigationError",
    "PaginationConfig",
    "PaginationMode",
    "PaginationResolver",
    "ReadinessTimeoutError",
    "RecordSetExtractor",
    "ScrapeCancelledError",
    "ScrapeError",
    "ScrapeOrchestrator",
    "SiteProfile",
    "UrlAnchorResolver",
    "ValidationError",
    "build_orchestrator",
    "scrape_listing_direct",
]
