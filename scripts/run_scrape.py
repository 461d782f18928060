#!/usr/bin/env -S uv run
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "playwright>=1.40.0",
#     "beautifulsoup4>=4.12.0",
#     "lxml>=4.9.0",
#     "pyyaml>=6.0",
#     "pydantic>=2.0.0",
#     "structlog>=23.1.0",
# ]
# ///
"""
Manual execution script for directory scraping.

Usage:
    uv run scripts/run_scrape.py --url URL                   # Walk all pages
    uv run scripts/run_scrape.py --url URL --page 3          # Start at page 3
    uv run scripts/run_scrape.py --url URL --max-pages 1     # Single page
    uv run scripts/run_scrape.py --url URL --profile NAME    # Other site layout
    uv run scripts/run_scrape.py --url URL --json            # JSON output
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import structlog

# Add repo root to path so the package imports without installation
REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

from directory_scraper.api import build_orchestrator
from directory_scraper.config import load_config
from directory_scraper.errors import ScrapeError, ValidationError
from directory_scraper.logging_config import setup_logging


async def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(description="DirectoryScraper - Scrape business listings")
    parser.add_argument(
        "--url",
        required=True,
        help="Listing URL to scrape",
    )
    parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Page to start from in counter mode (default: 1)",
    )
    parser.add_argument(
        "--profile",
        help="Site profile name (default: scraper.default_profile)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        help="Stop after this many pages (default: scraper.max_pages)",
    )
    parser.add_argument(
        "--config",
        help="Path to config file (default: bundled settings.yaml)",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        help="Log output format (default: logging.format)",
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        setup_logging()
        structlog.get_logger().error("config_load_failed", error=str(e))
        sys.exit(1)

    setup_logging(
        "DEBUG" if args.verbose else config["logging"].get("level", "INFO"),
        args.log_format or config["logging"].get("format", "console"),
    )
    logger = structlog.get_logger()

    if args.headed:
        config["browser"]["headless"] = False

    try:
        orchestrator = build_orchestrator(profile=args.profile, config=config)
    except (KeyError, ValueError) as e:
        logger.error("orchestrator_setup_failed", error=str(e))
        sys.exit(1)

    max_pages = args.max_pages or config["scraper"].get("max_pages")
    started_at = datetime.now(timezone.utc)
    records = []
    pages = 0
    next_page = None
    failure = None

    try:
        async for result in orchestrator.walk(args.url, args.page, max_pages=max_pages):
            pages += 1
            records.extend(result.records)
            next_page = result.next_page
            logger.info(
                "page_scraped",
                page=result.page,
                url=result.url,
                records=len(result.records),
                next_page=next_page,
            )
    except ValidationError as e:
        logger.error("invalid_input", error=str(e))
        sys.exit(2)
    except ScrapeError as e:
        # Keep what was collected before the failing page
        failure = e
        logger.error("scrape_failed", error=str(e), error_type=e.error_type)
    except KeyboardInterrupt:
        logger.info("interrupted_by_user")
        sys.exit(130)

    duration = (datetime.now(timezone.utc) - started_at).total_seconds()

    if args.json:
        print(json.dumps({
            "success": failure is None,
            "data": records,
            "nextPage": next_page,
            "pages": pages,
            "error": str(failure) if failure else None,
        }, indent=2))
    else:
        print("\n" + "=" * 70)
        print("Directory Scrape Summary")
        print("=" * 70)
        print(f"Profile:           {orchestrator.profile.name}")
        print(f"Pages scraped:     {pages}")
        print(f"Records:           {len(records)}")
        print(f"Resume from:       {next_page if next_page is not None else '-'}")
        print(f"Duration:          {duration:.2f}s")
        if failure:
            print(f"Error:             [{failure.error_type}] {failure}")
        print("=" * 70)

    sys.exit(0 if failure is None else 1)


if __name__ == "__main__":
    asyncio.run(main())
