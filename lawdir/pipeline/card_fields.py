"""
Declarative field table for lawyer listing cards.

Each field maps to an ordered list of (sub-selector, extractor) pairs.
``parse_card`` walks the table: for every field it tries the pairs in
order and keeps the first non-empty value. Extractors receive every node
the sub-selector matched inside the card and return a value or None.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple
from urllib.parse import urljoin

from selectolax.parser import Node

from ..config import BASE_ORIGIN


Extractor = Callable[[List[Node]], Any]

_DECIMAL_RE = re.compile(r"(\d+\.?\d*)")
_INT_RE = re.compile(r"(\d+)")

CARD_SELECTORS = [
    'div[data-testid="lawyer-card"]',
    '.lawyer-card',
    '[class*="lawyer"][class*="card"]',
    'article[data-lawyer-id]',
    '.search-result-lawyer',
    '.profile-card',
    '[data-lawyer-name]',
]

NAME_SELECTORS = ['[data-testid="lawyer-name"]', 'h2 a', 'h3 a', '.lawyer-name', '.profile-name', 'a[href*="/attorney/"]']
RATING_SELECTORS = ['[data-testid="rating"]', '.rating-value', '.avvo-rating', '[class*="rating"]']
REVIEW_SELECTORS = ['[data-testid="review-count"]', '.review-count', '[class*="review"]']
PRACTICE_SELECTORS = ['[data-testid="practice-areas"]', '.practice-areas', '.specialties', '[class*="practice"]']
LOCATION_SELECTORS = ['[data-testid="location"]', '.location', '.address', '[class*="location"]']
PHONE_SELECTORS = ['[data-testid="phone"]', '.phone', 'a[href^="tel:"]', '[class*="phone"]']
WEBSITE_SELECTORS = ['[data-testid="website"]', 'a[href*="website"]', '.website', 'a[data-website]']
YEARS_SELECTORS = ['[data-testid="years-licensed"]', '.years-licensed', '[class*="years"]']
BAR_SELECTORS = ['[data-testid="bar-admissions"]', '.bar-admissions', '[class*="bar"]']
LANGUAGE_SELECTORS = ['[data-testid="languages"]', '.languages', '[class*="language"]']
BIO_SELECTORS = ['[data-testid="bio"]', '.bio', '.description', '.profile-description', 'p']

BIO_MIN_CHARS = 50


class NameLink(NamedTuple):
    name: str
    profile_url: str


def _text(node: Node) -> str:
    return (node.text() or "").strip()


def _attr(node: Node, name: str) -> str:
    return ((node.attributes or {}).get(name) or "").strip()


def absolute_url(href: str) -> str:
    if not href:
        return ""
    if href.startswith("http"):
        return href
    return urljoin(BASE_ORIGIN, href)


# -------------------------
# Extractors
# -------------------------
def name_and_link(nodes: List[Node]) -> Optional[NameLink]:
    name = _text(nodes[0])
    if not name:
        return None
    return NameLink(name, absolute_url(_attr(nodes[0], "href")))


def first_text(nodes: List[Node]) -> Optional[str]:
    return _text(nodes[0]) or None


def first_decimal(nodes: List[Node]) -> Optional[float]:
    m = _DECIMAL_RE.search(_text(nodes[0]))
    return float(m.group(1)) if m else None


def first_integer(nodes: List[Node]) -> Optional[int]:
    m = _INT_RE.search(_text(nodes[0]))
    return int(m.group(1)) if m else None


def child_items(child_selector: str, min_len: int) -> Extractor:
    """Collect child texts longer than ``min_len`` under every match."""
    def extract(nodes: List[Node]) -> Optional[List[str]]:
        items: List[str] = []
        for node in nodes:
            for child in node.css(child_selector):
                text = _text(child)
                if text and len(text) > min_len:
                    items.append(text)
        return items or None
    return extract


def comma_split(nodes: List[Node]) -> Optional[List[str]]:
    text = _text(nodes[0])
    if "," not in text:
        return None
    return [t.strip() for t in text.split(",") if len(t.strip()) > 2] or None


def phone_text_or_tel(nodes: List[Node]) -> Optional[str]:
    text = _text(nodes[0])
    if text:
        return text
    return _attr(nodes[0], "href").replace("tel:", "") or None


def href(nodes: List[Node]) -> Optional[str]:
    return _attr(nodes[0], "href") or None


def long_text(nodes: List[Node]) -> Optional[str]:
    text = _text(nodes[0])
    return text if len(text) > BIO_MIN_CHARS else None


@dataclass(frozen=True)
class FieldSpec:
    field: str
    candidates: Tuple[Tuple[str, Extractor], ...]


def _each(selectors: Sequence[str], extractor: Extractor) -> Tuple[Tuple[str, Extractor], ...]:
    return tuple((s, extractor) for s in selectors)


FIELD_TABLE: Tuple[FieldSpec, ...] = (
    FieldSpec("identity", _each(NAME_SELECTORS, name_and_link)),
    FieldSpec("rating", _each(RATING_SELECTORS, first_decimal)),
    FieldSpec("review_count", _each(REVIEW_SELECTORS, first_integer)),
    FieldSpec(
        "practice_areas",
        _each(PRACTICE_SELECTORS, child_items("li, span, a", 2)) + _each(PRACTICE_SELECTORS, comma_split),
    ),
    FieldSpec("location", _each(LOCATION_SELECTORS, first_text)),
    FieldSpec("phone", _each(PHONE_SELECTORS, phone_text_or_tel)),
    FieldSpec("website", _each(WEBSITE_SELECTORS, href)),
    FieldSpec("years_licensed", _each(YEARS_SELECTORS, first_integer)),
    FieldSpec("bar_admissions", _each(BAR_SELECTORS, child_items("li, span", 1))),
    FieldSpec("languages", _each(LANGUAGE_SELECTORS, child_items("li, span", 1))),
    FieldSpec("bio", _each(BIO_SELECTORS, long_text)),
)


def resolve_field(card: Node, spec: FieldSpec) -> Any:
    for selector, extractor in spec.candidates:
        nodes = card.css(selector)
        if not nodes:
            continue
        value = extractor(nodes)
        if value not in (None, "", []):
            return value
    return None


def parse_card(card: Node, table: Sequence[FieldSpec] = FIELD_TABLE) -> Optional[Dict[str, Any]]:
    """Extract card fields; None when the card has neither name nor link."""
    fields: Dict[str, Any] = {}
    for spec in table:
        fields[spec.field] = resolve_field(card, spec)

    identity = fields.pop("identity", None)
    if not identity or not (identity.name or identity.profile_url):
        return None
    fields["name"] = identity.name or "Unknown"
    fields["profile_url"] = identity.profile_url
    return fields
