"""Apply extraction schemas to listing HTML."""

from typing import List, Optional, Union

from bs4 import BeautifulSoup, Tag
import structlog

from .models import ExtractionSchema, FieldRule, Record

logger = structlog.get_logger(__name__).bind(service="scraper")


def parse_html(html: str) -> BeautifulSoup:
    """Parse rendered page HTML into a document."""
    return BeautifulSoup(html, "lxml")


class FieldExtractor:
    """Map one listing fragment to a record using a schema."""

    def extract(self, fragment: Tag, schema: ExtractionSchema) -> Record:
        """
        Extract every schema field from a fragment.

        Missing elements and empty values become the rule's sentinel;
        nothing here raises for absent markup.

        Args:
            fragment: DOM fragment for one listing entry
            schema: Field rules to apply

        Returns:
            Record with exactly the schema's field names as keys
        """
        return {rule.name: self._extract_field(fragment, rule) for rule in schema.rules}

    def _extract_field(self, fragment: Tag, rule: FieldRule) -> str:
        """Try the primary selector, then fallbacks, until one yields a value."""
        for selector in rule.selectors:
            if rule.join_all:
                value = self._join_all(fragment, selector, rule)
            else:
                value = self._first_match(fragment, selector, rule)
            if value is not None:
                return value
        return rule.sentinel

    def _first_match(self, fragment: Tag, selector: str, rule: FieldRule) -> Optional[str]:
        elem = fragment.select_one(selector)
        if elem is None:
            return None
        return self._read(elem, rule)

    def _join_all(self, fragment: Tag, selector: str, rule: FieldRule) -> Optional[str]:
        elems = fragment.select(selector)
        if not elems:
            return None
        # Empty entries keep their place as the sentinel
        values = [self._read(elem, rule) or rule.sentinel for elem in elems]
        return rule.delimiter.join(values)

    def _read(self, elem: Tag, rule: FieldRule) -> Optional[str]:
        """Read text (trimmed) or an attribute (verbatim); None when empty."""
        if rule.source == "attribute":
            value = elem.get(rule.attribute)
            if isinstance(value, list):
                # Multi-valued attributes such as class
                value = " ".join(value)
            if value is None or not value.strip():
                return None
            return value

        text = elem.get_text().strip()
        return text or None


class RecordSetExtractor:
    """Extract one record per repeating listing fragment."""

    def __init__(self, field_extractor: Optional[FieldExtractor] = None):
        self.field_extractor = field_extractor or FieldExtractor()

    def extract_all(
        self,
        document: Union[BeautifulSoup, Tag, str],
        container_selector: str,
        schema: ExtractionSchema,
    ) -> List[Record]:
        """
        Extract records for every fragment matching the container selector.

        Args:
            document: Loaded page (parsed document or raw HTML)
            container_selector: CSS selector for one listing entry
            schema: Field rules applied to each entry

        Returns:
            Records in document order; empty list when nothing matches
        """
        if isinstance(document, str):
            document = parse_html(document)

        fragments = document.select(container_selector)
        records = [self.field_extractor.extract(fragment, schema) for fragment in fragments]

        if not records:
            logger.info("no_fragments_matched", container_selector=container_selector)
        else:
            logger.debug(
                "records_extracted",
                container_selector=container_selector,
                count=len(records),
                fields=schema.field_names,
            )

        return records
