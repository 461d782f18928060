"""Data models for DirectoryScraper."""

from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SENTINEL = "N/A"

# A record is a flat mapping of field name -> string value
Record = Dict[str, str]


class FieldRule(BaseModel):
    """How to read one field out of a listing fragment."""

    model_config = ConfigDict(frozen=True)

    name: str
    selector: str
    source: Literal["text", "attribute"] = "text"
    attribute: Optional[str] = None
    join_all: bool = False
    delimiter: str = ", "
    sentinel: str = SENTINEL
    fallbacks: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_attribute(self) -> "FieldRule":
        if self.source == "attribute" and not self.attribute:
            raise ValueError(f"Field '{self.name}' reads an attribute but names none")
        return self

    @property
    def selectors(self) -> List[str]:
        """Primary selector followed by fallbacks, in trial order."""
        return [self.selector, *self.fallbacks]


class ExtractionSchema(BaseModel):
    """Ordered, immutable set of field rules."""

    model_config = ConfigDict(frozen=True)

    rules: Tuple[FieldRule, ...]

    @field_validator("rules")
    @classmethod
    def _unique_names(cls, rules: Tuple[FieldRule, ...]) -> Tuple[FieldRule, ...]:
        seen = set()
        for rule in rules:
            if rule.name in seen:
                raise ValueError(f"Duplicate field name: {rule.name}")
            seen.add(rule.name)
        return rules

    @property
    def field_names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExtractionSchema":
        """
        Build a schema from an ordered ``name -> rule`` mapping.

        A rule may be a bare selector string (text, first match) or a
        mapping of FieldRule attributes.

        Example:
            >>> ExtractionSchema.from_mapping({
            ...     "companyName": "h2.article--title",
            ...     "website": {"selector": "a.site", "source": "attribute", "attribute": "href"},
            ... })
        """
        rules = []
        for name, rule in data.items():
            if isinstance(rule, str):
                rules.append(FieldRule(name=name, selector=rule))
            else:
                rules.append(FieldRule(name=name, **rule))
        return cls(rules=rules)


class PaginationMode(str, Enum):
    """Supported pagination conventions."""

    URL_ANCHOR = "url_anchor"
    COUNTER = "counter"


class PaginationConfig(BaseModel):
    """Pagination strategy selection and its selectors."""

    model_config = ConfigDict(frozen=True)

    mode: PaginationMode = PaginationMode.COUNTER
    # URL-anchor mode: the "next page" control
    next_selector: str = ".pagination a[rel='next'], .pagination a.next"
    placeholder_hrefs: Tuple[str, ...] = ("#", "")
    # Counter mode: any element proving a further page exists
    indicator_selector: str = ".pagination a[href*='?page=']"
    page_param: str = "page"


class SiteProfile(BaseModel):
    """Everything needed to scrape one directory layout."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    container_selector: str
    ready_selector: Optional[str] = None
    extraction_schema: ExtractionSchema = Field(alias="schema")
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)


class BrowserOptions(BaseModel):
    """Browser launch configuration passed explicitly to each session."""

    model_config = ConfigDict(frozen=True)

    headless: bool = True
    stealth: bool = True
    navigation_timeout_ms: int = Field(default=30000, gt=0)
    selector_timeout_ms: int = Field(default=60000, gt=0)
    wait_until: Literal["domcontentloaded", "load", "networkidle", "commit"] = "domcontentloaded"
    extra_args: Tuple[str, ...] = ()


class Continuation(BaseModel):
    """Another page exists; ``next_target`` is a URL or a page number."""

    model_config = ConfigDict(frozen=True)

    next_target: Union[int, str]


class Exhausted(BaseModel):
    """No further page."""

    model_config = ConfigDict(frozen=True)


PaginationState = Union[Continuation, Exhausted]


class FetchResult(BaseModel):
    """Result of one fetch-extract-paginate cycle."""

    model_config = ConfigDict(frozen=True)

    records: List[Record]
    pagination: PaginationState
    url: str
    page: int = 1
    duration_ms: int = 0

    @property
    def next_page(self) -> Optional[Union[int, str]]:
        """Boundary form of the pagination state (None when exhausted)."""
        if isinstance(self.pagination, Continuation):
            return self.pagination.next_target
        return None


def is_absolute_http_url(value: str) -> bool:
    """Return True when ``value`` looks like an absolute http(s) URL."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ScrapeRequest(BaseModel):
    """Input to one scrape cycle."""

    url: str
    page: int = Field(default=1, ge=1)

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        value = value.strip()
        if not is_absolute_http_url(value):
            raise ValueError("A valid URL is required.")
        return value


class ScrapeResponse(BaseModel):
    """JSON response shape handed to the HTTP layer."""

    success: bool
    data: Optional[List[Record]] = None
    next_page: Optional[Union[int, str]] = Field(default=None, serialization_alias="nextPage")
    error: Optional[str] = None
    error_type: Optional[str] = Field(default=None, serialization_alias="errorType")

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with boundary field names, omitting irrelevant keys."""
        if self.success:
            return self.model_dump(by_alias=True, include={"success", "data", "next_page"})
        return self.model_dump(by_alias=True, include={"success", "error", "error_type"})
