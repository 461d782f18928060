"""Error taxonomy for scrape cycles.

Every error carries an ``error_type`` code that is included in structured
logs and in the boundary response so callers can pick a retry policy
without parsing messages.
"""

from typing import Optional


class ScrapeError(Exception):
    """Base class for all failures of a scrape cycle."""

    error_type = "internal_error"

    def __init__(self, message: str, error_type: Optional[str] = None):
        super().__init__(message)
        if error_type:
            self.error_type = error_type


class ValidationError(ScrapeError):
    """Bad or missing target URL / page. Raised before any browser starts."""

    error_type = "validation"


class LaunchError(ScrapeError):
    """Browser process failed to start."""

    error_type = "launch_failed"


class NavigationError(ScrapeError):
    """Network, DNS or invalid-URL failure while loading the page."""

    error_type = "navigation_failed"


class ReadinessTimeoutError(ScrapeError):
    """Expected content never appeared.

    Usually means the listing has zero results or the site layout changed,
    not an outage.
    """

    error_type = "readiness_timeout"


class ScrapeCancelledError(ScrapeError):
    """Cycle was cancelled by the caller or ran past its deadline."""

    error_type = "cancelled"


def categorize_navigation_error(error_msg: str) -> str:
    """Map a browser error message to a navigation error code."""
    if "ERR_NAME_NOT_RESOLVED" in error_msg:
        return "dns_resolution"
    if "ERR_CONNECTION_REFUSED" in error_msg:
        return "connection_refused"
    if "ERR_TIMED_OUT" in error_msg or "Timeout" in error_msg:
        return "timeout"
    if "ERR_ABORTED" in error_msg:
        return "navigation_aborted"
    if "Cannot navigate to invalid URL" in error_msg or "ERR_INVALID_URL" in error_msg:
        return "invalid_url"
    return NavigationError.error_type
