"""Configuration module."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def _env_bool(value: str) -> bool:
    return value.strip().lower() not in {"0", "false", "no", "off"}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses the bundled settings.yaml

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = Path(__file__).parent / "settings.yaml"

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    for section in ("browser", "scraper", "logging", "profiles"):
        config.setdefault(section, {})

    # Override with environment variables if present
    if "LOG_LEVEL" in os.environ:
        config["logging"]["level"] = os.environ["LOG_LEVEL"]

    if "SCRAPER_PROFILE" in os.environ:
        config["scraper"]["default_profile"] = os.environ["SCRAPER_PROFILE"]

    if "SCRAPER_HEADLESS" in os.environ:
        config["browser"]["headless"] = _env_bool(os.environ["SCRAPER_HEADLESS"])

    if "SCRAPER_STEALTH" in os.environ:
        config["browser"]["stealth"] = _env_bool(os.environ["SCRAPER_STEALTH"])

    if "SCRAPER_NAV_TIMEOUT_MS" in os.environ:
        config["browser"]["navigation_timeout_ms"] = int(os.environ["SCRAPER_NAV_TIMEOUT_MS"])

    if "SCRAPER_SELECTOR_TIMEOUT_MS" in os.environ:
        config["browser"]["selector_timeout_ms"] = int(os.environ["SCRAPER_SELECTOR_TIMEOUT_MS"])

    return config
