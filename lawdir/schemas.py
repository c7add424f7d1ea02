"""
Avvo Lawyers Scraper - Pydantic Data Schemas

Canonical lawyer record produced by every extraction strategy, the
per-page challenge state, the detail-page enrichment overlay and the
run statistics persisted at the end of a run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChallengeState(str, Enum):
    """States of the per-page anti-bot challenge gate."""
    FRESH = "Fresh"
    DETECTED = "Detected"
    SOLVING = "Solving"
    BYPASSED = "Bypassed"
    FAILED = "Failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LawyerRecord(BaseModel):
    """
    One lawyer listing in canonical shape.

    Attributes are snake_case; the serialized form uses the camelCase keys
    consumers of the dataset expect (``reviewCount``, ``profileUrl`` ...).
    ``profile_url`` is the identity key when non-empty.
    """
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    name: str = Field(default="Unknown", description="Lawyer full name")
    rating: Optional[float] = Field(default=None, description="Directory rating, if shown")
    review_count: int = Field(default=0, alias="reviewCount")
    practice_areas: List[str] = Field(default_factory=list, alias="practiceAreas")
    location: str = Field(default="", description="Address components joined with ', '")
    phone: str = ""
    email: str = ""
    website: str = ""
    years_licensed: Optional[int] = Field(default=None, alias="yearsLicensed")
    bar_admissions: List[str] = Field(default_factory=list, alias="barAdmissions")
    languages: List[str] = Field(default_factory=list)
    profile_url: str = Field(default="", alias="profileUrl")
    bio: str = ""
    scraped_at: datetime = Field(default_factory=_utcnow, alias="scrapedAt")

    # Enrichment-only fields, present once a detail page was merged in
    education: Optional[List[str]] = None
    awards: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def default_unknown_name(cls, v):
        """Blank names are stored as 'Unknown'."""
        v = (v or "").strip()
        return v or "Unknown"

    @field_validator("phone", "email", "website", "location", "bio", "profile_url")
    @classmethod
    def strip_text(cls, v):
        return (v or "").strip()

    @property
    def identity_key(self) -> str:
        return self.profile_url

    def with_overlay(self, overlay: "EnrichmentOverlay") -> "LawyerRecord":
        """Return a copy with the detail-page fields merged in.

        An existing bio is kept; the fetched bio only fills an empty one.
        Education and awards are set outright.
        """
        return self.model_copy(update={
            "bio": self.bio or overlay.bio,
            "education": list(overlay.education),
            "awards": list(overlay.awards),
        })

    def to_output(self) -> Dict[str, Any]:
        """Serialize with camelCase keys; enrichment fields only when set."""
        data = self.model_dump(mode="json", by_alias=True)
        for key in ("education", "awards"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class EnrichmentOverlay(BaseModel):
    """Result of fetching one detail page. Never persisted on its own."""
    bio: str = ""
    education: List[str] = Field(default_factory=list)
    awards: List[str] = Field(default_factory=list)
    blocked: bool = False

    @classmethod
    def blocked_page(cls) -> "EnrichmentOverlay":
        return cls(blocked=True)


class RunStatistics(BaseModel):
    """Final run summary stored under the ``statistics`` key."""
    model_config = ConfigDict(populate_by_name=True)

    total_lawyers_scraped: int = Field(alias="totalLawyersScraped")
    pages_processed: int = Field(alias="pagesProcessed")
    extraction_method: str = Field(alias="extractionMethod")
    duration: str
    timestamp: datetime
    blocked_profiles: int = Field(default=0, alias="blockedProfiles")
    resources: Dict[str, Optional[float]] = Field(default_factory=dict)

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if not v.endswith(" seconds"):
            raise ValueError('duration must look like "<N> seconds"')
        return v
