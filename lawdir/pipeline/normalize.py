"""
Record normalization - map raw lawyer-like objects onto LawyerRecord.

Two object-shaped sources need real mapping:
- schema.org entries (Attorney / Person / LegalService) from JSON-LD
- listing objects mined from inline script data
DOM card dicts are already near-canonical and only get defaults filled.

Fields with several plausible source names resolve left-to-right; the
first present, non-empty value wins.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ..schemas import LawyerRecord


_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_INT_RE = re.compile(r"\d+")


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def first_present(raw: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys`` (dotted paths allowed)."""
    for key in keys:
        value: Any = raw
        for part in key.split("."):
            value = value.get(part) if isinstance(value, dict) else None
        if not _is_empty(value):
            return value
    return None


def as_text(value: Any) -> str:
    """Reduce a scalar or a schema.org object (``{"name": ...}``) to text."""
    if value is None:
        return ""
    if isinstance(value, dict):
        return as_text(value.get("name") or value.get("@id") or "")
    if isinstance(value, (list, tuple)):
        return ", ".join(t for t in (as_text(v) for v in value) if t)
    return str(value).strip()


def as_text_list(value: Any) -> List[str]:
    if _is_empty(value):
        return []
    items = value if isinstance(value, (list, tuple)) else [value]
    out: List[str] = []
    for item in items:
        text = as_text(item)
        if text:
            out.append(text)
    return out


def to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = _NUMBER_RE.search(str(value))
    return float(m.group(0)) if m else None


def to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    m = _INT_RE.search(str(value))
    return int(m.group(0)) if m else None


def format_location(address: Any) -> str:
    """Plain string addresses pass verbatim; structured ones join
    locality, region and postal code with ', ' skipping empty parts."""
    if isinstance(address, str):
        return address
    if not isinstance(address, dict):
        return ""
    parts = (
        address.get("addressLocality"),
        address.get("addressRegion"),
        address.get("postalCode"),
    )
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip())


def practice_areas_from_schema(entry: Dict[str, Any]) -> List[str]:
    knows_about = entry.get("knowsAbout")
    if isinstance(knows_about, list) and knows_about:
        return as_text_list(knows_about)
    area_served = entry.get("areaServed")
    if not _is_empty(area_served):
        text = as_text(area_served)
        return [text] if text else []
    return []


def from_schema_org(entry: Dict[str, Any]) -> LawyerRecord:
    """Map one schema.org Attorney/Person/LegalService entry."""
    aggregate = entry.get("aggregateRating")
    aggregate = aggregate if isinstance(aggregate, dict) else {}
    url = as_text(entry.get("url"))
    return LawyerRecord(
        name=as_text(first_present(entry, "name", "legalName")),
        rating=to_float(aggregate.get("ratingValue")),
        review_count=to_int(first_present(aggregate, "reviewCount", "ratingCount")) or 0,
        practice_areas=practice_areas_from_schema(entry),
        location=format_location(entry.get("address")),
        phone=as_text(entry.get("telephone")),
        email=as_text(entry.get("email")).replace("mailto:", ""),
        website=url,
        profile_url=url,
        bio=as_text(entry.get("description")),
    )


def from_embedded(item: Dict[str, Any]) -> LawyerRecord:
    """Map one listing object mined from inline script data."""
    reviews = item.get("reviews")
    review_count = to_int(item.get("reviewCount"))
    if not review_count and isinstance(reviews, list):
        review_count = len(reviews)
    return LawyerRecord(
        name=as_text(first_present(item, "name", "fullName")),
        rating=to_float(first_present(item, "rating", "avvoRating")),
        review_count=review_count or 0,
        practice_areas=as_text_list(first_present(item, "practiceAreas", "specialties")),
        location=as_text(first_present(item, "location", "city")),
        phone=as_text(first_present(item, "phone", "phoneNumber")),
        email=as_text(item.get("email")),
        website=as_text(first_present(item, "website", "websiteUrl")),
        years_licensed=to_int(first_present(item, "yearsLicensed", "yearAdmitted")),
        bar_admissions=as_text_list(item.get("barAdmissions")),
        languages=as_text_list(item.get("languages")),
        profile_url=as_text(first_present(item, "profileUrl", "url")),
        bio=as_text(first_present(item, "bio", "description")),
    )


def from_card(fields: Dict[str, Any]) -> LawyerRecord:
    """DOM card fields are already canonical; only fill defaults."""
    return LawyerRecord(**{k: v for k, v in fields.items() if v is not None})
