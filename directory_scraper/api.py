"""
Direct-call API for the HTTP layer.

The web handler decodes query parameters, calls ``scrape_listing_direct``
and serializes the returned payload with the returned status code.
"""

import re
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

from .browser import BrowserSession
from .config import load_config
from .errors import ScrapeError, ValidationError
from .models import ScrapeResponse
from .profile_loader import ProfileLoader
from .scraper import ScrapeOrchestrator

logger = structlog.get_logger(__name__).bind(service="scraper")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def build_orchestrator(
    config_path: Optional[str] = None,
    profile: Optional[str] = None,
    session_factory=BrowserSession,
    config: Optional[Dict[str, Any]] = None,
) -> ScrapeOrchestrator:
    """
    Create an orchestrator from configuration.

    Args:
        config_path: Optional path to config file (uses default if not provided)
        profile: Profile name (uses configured default if not provided)
        session_factory: Browser session factory
        config: Already loaded configuration (skips loading)

    Returns:
        Configured ScrapeOrchestrator
    """
    config = config if config is not None else load_config(config_path)
    loader = ProfileLoader(config)
    return ScrapeOrchestrator(
        profile=loader.load_profile(profile),
        browser_options=loader.browser_options(),
        session_factory=session_factory,
        deadline=loader.cycle_deadline(),
    )


def parse_page_param(value: Any) -> int:
    """
    Page query parameter as int.

    Leading digits are used ("3abc" is 3). Missing, unparsable or zero
    means page 1; negative values are passed on for validation to reject.
    """
    if value is None or isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return value or 1
    match = _LEADING_INT.match(str(value))
    if match is None:
        return 1
    return int(match.group(1)) or 1


async def scrape_listing_direct(
    params: Mapping[str, Any],
    orchestrator: Optional[ScrapeOrchestrator] = None,
    config_path: Optional[str] = None,
    profile: Optional[str] = None,
) -> Tuple[int, Dict[str, Any]]:
    """
    Scrape one listing page for a request.

    Args:
        params: Decoded query parameters, ``url`` (required) and ``page``
        orchestrator: Pre-built orchestrator (built from config if omitted)
        config_path: Optional path to config file
        profile: Optional profile name

    Returns:
        Tuple of (HTTP status code, JSON payload):
        200 {'success': True, 'data': [...], 'nextPage': int | str | None}
        400 {'success': False, 'error': str, 'errorType': 'validation'}
        500 {'success': False, 'error': str, 'errorType': str}
    """
    url = params.get("url")
    page = parse_page_param(params.get("page"))

    # Reject bad input before anything heavier is set up
    if not isinstance(url, str) or not url.strip():
        return _failure(400, ValidationError("A valid URL is required."))

    try:
        if orchestrator is None:
            orchestrator = build_orchestrator(config_path, profile)
        result = await orchestrator.fetch(url, page)

    except ValidationError as e:
        logger.info("scrape_request_rejected", url=url, page=page, error=str(e))
        return _failure(400, e)

    except ScrapeError as e:
        return _failure(500, e, f"Failed to scrape data. Error: {e}")

    except Exception as e:
        logger.exception("scrape_request_failed", url=url, error=str(e))
        return _failure(500, ScrapeError(str(e)), f"Failed to scrape data. Error: {e}")

    response = ScrapeResponse(success=True, data=result.records, next_page=result.next_page)
    return 200, response.to_payload()


def _failure(status: int, error: ScrapeError, message: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    response = ScrapeResponse(success=False, error=message or str(error), error_type=error.error_type)
    return status, response.to_payload()
