"""Load site profiles and browser options from configuration."""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
import structlog

from .models import BrowserOptions, ExtractionSchema, PaginationConfig, SiteProfile

logger = structlog.get_logger(__name__).bind(service="scraper")


class ProfileLoader:
    """Build validated profiles from a loaded configuration dictionary."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize profile loader.

        Args:
            config: Configuration as returned by ``load_config``
        """
        self.config = config
        self.profiles: Dict[str, Any] = config.get("profiles") or {}
        logger.debug("profile_loader_initialized", profiles=list(self.profiles))

    def profile_names(self) -> List[str]:
        return list(self.profiles)

    def default_profile_name(self) -> Optional[str]:
        name = (self.config.get("scraper") or {}).get("default_profile")
        if name:
            return name
        names = self.profile_names()
        return names[0] if names else None

    def load_profile(self, name: Optional[str] = None) -> SiteProfile:
        """
        Load a named profile (the configured default when ``name`` is None).

        Raises:
            KeyError: If the profile does not exist
            ValueError: If the profile is malformed
        """
        name = name or self.default_profile_name()
        if not name or name not in self.profiles:
            logger.error("profile_not_found", profile=name, available=self.profile_names())
            raise KeyError(f"No profile named {name!r}. Available: {', '.join(self.profile_names())}")

        data = self.profiles[name]
        try:
            profile = SiteProfile(
                name=name,
                container_selector=data["container_selector"],
                ready_selector=data.get("ready_selector"),
                extraction_schema=ExtractionSchema.from_mapping(data["schema"]),
                pagination=PaginationConfig(**(data.get("pagination") or {})),
            )
        except (KeyError, TypeError, PydanticValidationError) as e:
            logger.error("profile_load_failed", profile=name, error=str(e))
            raise ValueError(f"Invalid profile {name!r}: {e}") from e

        logger.info(
            "profile_loaded",
            profile=name,
            fields=profile.extraction_schema.field_names,
            pagination_mode=profile.pagination.mode.value,
        )
        return profile

    def browser_options(self) -> BrowserOptions:
        return BrowserOptions(**(self.config.get("browser") or {}))

    def cycle_deadline(self) -> Optional[float]:
        value = (self.config.get("scraper") or {}).get("cycle_deadline_seconds")
        return float(value) if value is not None else None
