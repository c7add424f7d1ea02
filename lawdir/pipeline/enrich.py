"""
Profile enrichment - merge detail-page data into listing records.

Detail pages are fetched out-of-browser with the listing page's session
cookies and user agent. Records go out in fixed-size batches: fetches
inside a batch run concurrently, batches run one after another with a
short pause. Blocked or failed fetches leave the record untouched.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from selectolax.parser import HTMLParser

from ..config import EnrichmentSettings
from ..logging_config import get_logger
from ..schemas import EnrichmentOverlay, LawyerRecord
from .challenge import is_challenge_title
from .fetchers.static import ProfileFetcher, SessionContext


log = get_logger(__name__)

BLOCKED_STATUSES = {403, 503}

BIO_SELECTORS = ['[data-testid="bio"]', '.lawyer-bio', '.bio-text', '.profile-bio']
EDUCATION_SELECTORS = ['[data-testid="education"] li', '.education-item', '.school-item', '[class*="education"] li']
AWARD_SELECTORS = ['[data-testid="awards"] li', '.award-item', '[class*="award"] li']


def _first_text(parser: HTMLParser, selectors: Sequence[str]) -> str:
    for selector in selectors:
        node = parser.css_first(selector)
        if node is not None:
            text = (node.text() or "").strip()
            if text:
                return text
    return ""


def _first_list(parser: HTMLParser, selectors: Sequence[str]) -> List[str]:
    for selector in selectors:
        items = [(n.text() or "").strip() for n in parser.css(selector)]
        items = [t for t in items if t]
        if items:
            return items
    return []


def parse_profile_html(html: str) -> EnrichmentOverlay:
    """Parse a detail page into an overlay; challenge pages come back blocked."""
    parser = HTMLParser(html or "")
    title_node = parser.css_first("title")
    title = (title_node.text() or "") if title_node is not None else ""
    if is_challenge_title(title):
        return EnrichmentOverlay.blocked_page()
    return EnrichmentOverlay(
        bio=_first_text(parser, BIO_SELECTORS),
        education=_first_list(parser, EDUCATION_SELECTORS),
        awards=_first_list(parser, AWARD_SELECTORS),
    )


class ProfileEnricher:
    """Concurrent, batch-limited detail-page enrichment.

    ``blocked_count`` accumulates over the enricher's lifetime (one run).
    """

    def __init__(
        self,
        fetcher: Optional[ProfileFetcher] = None,
        settings: Optional[EnrichmentSettings] = None,
    ):
        self.settings = settings or EnrichmentSettings()
        self.fetcher = fetcher or ProfileFetcher(timeout_s=self.settings.timeout_s, retries=self.settings.retries)
        self._blocked = 0
        self._lock = threading.Lock()

    @property
    def blocked_count(self) -> int:
        with self._lock:
            return self._blocked

    def _mark_blocked(self) -> None:
        with self._lock:
            self._blocked += 1

    def fetch_overlay(self, url: str, session: SessionContext) -> Optional[EnrichmentOverlay]:
        """Fetch one detail page. None means a soft failure (keep record)."""
        try:
            res = self.fetcher.fetch(url, session)
        except Exception as e:
            log.debug(f"Failed to fetch profile page: {e} (stage=enrich, url={url})")
            return None
        if res.status_code in BLOCKED_STATUSES:
            log.debug(f"Cloudflare block detected on profile page ({res.status_code}): {url}")
            return EnrichmentOverlay.blocked_page()
        if res.status_code != 200:
            if res.error:
                log.debug(f"Failed to fetch profile page: {res.error} (stage=enrich, url={url})")
            else:
                log.debug(f"Profile page returned status {res.status_code} (stage=enrich, url={url})")
            return None
        overlay = parse_profile_html(res.html or "")
        if overlay.blocked:
            log.debug(f"Cloudflare challenge page detected: {url}")
        return overlay

    def _enrich_one(self, record: LawyerRecord, session: SessionContext) -> tuple[LawyerRecord, bool]:
        if not record.profile_url:
            return record, False
        overlay = self.fetch_overlay(record.profile_url, session)
        if overlay is None:
            return record, False
        if overlay.blocked:
            self._mark_blocked()
            log.warning(f"Profile page blocked by Cloudflare: {record.profile_url}")
            return record, True
        return record.with_overlay(overlay), False

    def enrich(
        self,
        records: Sequence[LawyerRecord],
        session: SessionContext,
        concurrency: Optional[int] = None,
    ) -> List[LawyerRecord]:
        return self.enrich_counted(records, session, concurrency)[0]

    def enrich_counted(
        self,
        records: Sequence[LawyerRecord],
        session: SessionContext,
        concurrency: Optional[int] = None,
    ) -> tuple[List[LawyerRecord], int]:
        """Enrich in batches; also returns how many of these records were blocked."""
        records = list(records)
        if not records:
            return records, 0

        batch_size = max(1, int(concurrency or self.settings.concurrency))
        log.info(f"Fetching full profiles for {len(records)} lawyers...")

        enriched: List[LawyerRecord] = []
        blocked = 0
        with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="enrich") as pool:
            for i in range(0, len(records), batch_size):
                batch = records[i:i + batch_size]
                # map() preserves input order and waits for the whole batch
                for record, was_blocked in pool.map(lambda r: self._enrich_one(r, session), batch):
                    enriched.append(record)
                    blocked += int(was_blocked)
                log.info(f"Enriched {min(i + batch_size, len(records))}/{len(records)} lawyers with full profiles")
                if i + batch_size < len(records):
                    time.sleep(self.settings.batch_pause_s)

        if blocked > 0:
            log.warning(f"{blocked} profile pages were blocked by Cloudflare - using basic info instead")
        return enriched, blocked
