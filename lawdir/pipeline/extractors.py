"""
Lawyer Extraction Strategies - JSON-LD, Embedded Script Data, HTML Cards

Each strategy consumes a rendered page handle (anything exposing
``content()`` like a Playwright Page) and returns canonical LawyerRecords.
Strategies are fail-soft: any internal error is logged and yields [].

ExtractionPipeline runs them strictly in order and stops at the first one
that returns at least one record, remembering that strategy's label.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from selectolax.parser import HTMLParser

from ..logging_config import get_logger
from ..schemas import LawyerRecord
from .card_fields import CARD_SELECTORS, FIELD_TABLE, parse_card
from .normalize import from_card, from_embedded, from_schema_org


log = get_logger(__name__)

LAWYER_TYPES = {"Attorney", "Person", "LegalService"}
EMBEDDED_MARKERS = ('"lawyers"', '"attorneys"', '"profiles"', "lawyerData")
EMBEDDED_ARRAY_FIELDS = ("lawyers", "attorneys", "profiles", "data.lawyers", "data.attorneys")


def _page_url(page: Any) -> str:
    try:
        return str(page.url)
    except Exception:
        return ""


class ExtractionStrategy:
    """Base class: ``extract(page) -> list[LawyerRecord]``, never raises."""

    label = "None"
    stage = "extract"

    def extract(self, page: Any) -> List[LawyerRecord]:
        try:
            return self._extract(page)
        except Exception as e:
            log.warning(f"{self.label} extraction failed: {e} (stage={self.stage}, url={_page_url(page)})")
            return []

    def _extract(self, page: Any) -> List[LawyerRecord]:
        raise NotImplementedError


# -------------------------
# Strategy 1: JSON-LD
# -------------------------
def _is_lawyer_entry(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    types = item.get("@type")
    if isinstance(types, list):
        return any(t in LAWYER_TYPES for t in types)
    return types in LAWYER_TYPES


def iter_lawyer_entries(data: Any) -> Iterable[dict]:
    """Yield lawyer-typed entries from one parsed JSON-LD block.

    Handles a top-level list, a single entry, an ``@graph`` wrapper and an
    ``ItemList`` whose elements wrap (``item``) or directly are entries.
    """
    if isinstance(data, list):
        candidates = data
    elif not isinstance(data, dict):
        candidates = []
    elif _is_lawyer_entry(data):
        candidates = [data]
    elif isinstance(data.get("@graph"), list):
        candidates = data["@graph"]
    elif data.get("@type") == "ItemList" and isinstance(data.get("itemListElement"), list):
        candidates = [
            (el.get("item") or el) if isinstance(el, dict) else el
            for el in data["itemListElement"]
        ]
    else:
        candidates = []
    for item in candidates:
        if _is_lawyer_entry(item):
            yield item


class JsonLdStrategy(ExtractionStrategy):
    label = "JSON-LD"
    stage = "json-ld"

    def _extract(self, page: Any) -> List[LawyerRecord]:
        log.info("Attempting to extract lawyers via JSON-LD")
        parser = HTMLParser(page.content())
        lawyers: List[LawyerRecord] = []
        for script in parser.css('script[type="application/ld+json"]'):
            try:
                data = json.loads(script.text() or "")
                block = [from_schema_org(entry) for entry in iter_lawyer_entries(data)]
            except (ValueError, TypeError) as e:
                log.debug(f"Failed to parse JSON-LD block: {e}")
                continue
            lawyers.extend(block)
        if lawyers:
            log.info(f"Extracted {len(lawyers)} lawyers via JSON-LD")
        return lawyers


# -------------------------
# Strategy 2: embedded script data
# -------------------------
def iter_json_objects(text: str) -> Iterator[Any]:
    """Yield each brace-delimited JSON value in ``text``, left to right.

    A brace that does not start valid JSON is skipped, so a nested object
    inside a non-strict literal can still be found.
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            obj, end = decoder.raw_decode(text, start)
        except ValueError:
            start = text.find("{", start + 1)
            continue
        yield obj
        start = text.find("{", end)


def find_script_listing(text: str) -> List[dict]:
    """First non-empty listing array among the script's JSON objects."""
    for obj in iter_json_objects(text):
        items = find_listing_array(obj)
        if items:
            return items
    return []


def find_listing_array(data: Any) -> List[dict]:
    if not isinstance(data, dict):
        return []
    for path in EMBEDDED_ARRAY_FIELDS:
        value: Any = data
        for part in path.split("."):
            value = value.get(part) if isinstance(value, dict) else None
        if isinstance(value, list) and value:
            return [v for v in value if isinstance(v, dict)]
    return []


class EmbeddedDataStrategy(ExtractionStrategy):
    label = "Internal API"
    stage = "embedded-data"

    def _extract(self, page: Any) -> List[LawyerRecord]:
        log.info("Attempting to extract lawyers via embedded script data")
        parser = HTMLParser(page.content())
        captured: List[LawyerRecord] = []
        for script in parser.css("script"):
            if (script.attributes or {}).get("src"):
                continue
            content = script.text() or ""
            if not any(marker in content for marker in EMBEDDED_MARKERS):
                continue
            try:
                items = find_script_listing(content)
                batch = [from_embedded(item) for item in items]
            except (ValueError, TypeError):
                continue
            if batch:
                log.info(f"Found {len(batch)} lawyers in embedded API data")
                captured.extend(batch)
        return captured


# -------------------------
# Strategy 3: HTML cards
# -------------------------
class HtmlCardStrategy(ExtractionStrategy):
    label = "HTML Parsing"
    stage = "html-cards"

    def __init__(self, card_selectors: Sequence[str] = CARD_SELECTORS, field_table=FIELD_TABLE):
        self.card_selectors = list(card_selectors)
        self.field_table = field_table

    def _extract(self, page: Any) -> List[LawyerRecord]:
        log.info("Extracting lawyer data via HTML card parsing")
        parser = HTMLParser(page.content())

        cards = []
        for selector in self.card_selectors:
            cards = parser.css(selector)
            if cards:
                log.info(f"Found {len(cards)} lawyer cards with selector: {selector}")
                break
        if not cards:
            log.warning(f"No lawyer cards found with standard selectors (url={_page_url(page)})")
            return []

        lawyers: List[LawyerRecord] = []
        for card in cards:
            try:
                fields = parse_card(card, self.field_table)
                if fields:
                    lawyers.append(from_card(fields))
            except Exception as e:
                log.debug(f"Error extracting individual lawyer card: {e}")
        log.info(f"Extracted {len(lawyers)} lawyers via HTML parsing")
        return lawyers


DEFAULT_STRATEGIES: Tuple[type, ...] = (JsonLdStrategy, EmbeddedDataStrategy, HtmlCardStrategy)


class ExtractionPipeline:
    """Ordered chain of strategies; the first non-empty result wins."""

    def __init__(self, strategies: Optional[Sequence[ExtractionStrategy]] = None):
        self.strategies = list(strategies) if strategies is not None else [cls() for cls in DEFAULT_STRATEGIES]

    def extract(self, page: Any) -> Tuple[List[LawyerRecord], str]:
        for strategy in self.strategies:
            records = strategy.extract(page)
            if records:
                log.info(f"{strategy.label} extraction successful: {len(records)} lawyers")
                return records, strategy.label
        return [], "None"
