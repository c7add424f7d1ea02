from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import psutil
from selectolax.parser import HTMLParser

from ..config import RunInput, Settings, build_search_url, proxy_settings
from ..logging_config import get_logger
from ..schemas import ChallengeState, LawyerRecord, RunStatistics
from ..storage import Dataset, KeyValueStore
from .budget import RunBudget
from .challenge import ChallengeSolver, detect_challenge_html
from .dedupe import Deduplicator
from .enrich import ProfileEnricher
from .extractors import ExtractionPipeline
from .fetchers.playwright import PlaywrightCrawler
from .fetchers.static import SessionContext
from .pagination import PaginationController


log = get_logger(__name__)

DEBUG_KEY = "DEBUG_PAGE_HTML"
STATISTICS_KEY = "statistics"
SETTLE_MS = 2000

@dataclass
class PageResult:
    """What one listing page contributed to the run."""
    url: str
    challenge: Optional[ChallengeState] = None
    method: str = "None"
    extracted: int = 0
    saved: List[LawyerRecord] = field(default_factory=list)
    next_url: Optional[str] = None
    skipped: bool = False


def page_structure(html: str) -> Dict[str, Any]:
    """Structural counts used to diagnose pages nothing could be read from."""
    parser = HTMLParser(html or "")
    title = parser.css_first("title")
    return {
        "articleCount": len(parser.css("article")),
        "divLawyerCount": len(parser.css('[class*="lawyer"]')),
        "dataTestIdCount": len(parser.css("[data-testid]")),
        "title": (title.text() or "").strip() if title is not None else "",
        "hasCloudflare": detect_challenge_html(html),
    }


def resource_usage() -> Dict[str, Optional[float]]:
    try:
        proc = psutil.Process()
        return {
            "cpu_percent": round(proc.cpu_percent(interval=None), 2),
            "rss_mb": round(proc.memory_info().rss / (1024 * 1024), 2),
        }
    except psutil.Error as e:
        log.debug(f"Could not read process resources: {e}")
        return {"cpu_percent": None, "rss_mb": None}


class RunOrchestrator:
    """Drives one scrape run: challenge gate, extraction, dedup, enrichment, paging.

    ``handle_page`` is the crawler's request handler and may run on several
    worker threads at once; run-wide state lives in the shared ``RunBudget``
    and ``Deduplicator``.
    """

    def __init__(
        self,
        run_input: RunInput,
        *,
        dataset: Dataset,
        kv_store: KeyValueStore,
        settings: Optional[Settings] = None,
        solver: Optional[ChallengeSolver] = None,
        pipeline: Optional[ExtractionPipeline] = None,
        dedup: Optional[Deduplicator] = None,
        enricher: Optional[ProfileEnricher] = None,
        pagination: Optional[PaginationController] = None,
        budget: Optional[RunBudget] = None,
        crawler_factory: Optional[Callable[..., PlaywrightCrawler]] = None,
    ):
        self.run_input = run_input
        self.settings = settings or Settings()
        self.dataset = dataset
        self.kv_store = kv_store
        self.solver = solver or ChallengeSolver(self.settings.challenge)
        self.pipeline = pipeline or ExtractionPipeline()
        self.dedup = dedup if dedup is not None else Deduplicator()
        self.pagination = pagination or PaginationController()
        self.budget = budget or RunBudget(
            max_records=run_input.max_lawyers,
            max_pages=self.settings.crawler.max_requests_per_crawl,
        )
        self._enricher = enricher
        self._enricher_lock = threading.Lock()
        self.crawler_factory = crawler_factory or PlaywrightCrawler

    @property
    def enricher(self) -> ProfileEnricher:
        with self._enricher_lock:
            if self._enricher is None:
                self._enricher = ProfileEnricher(settings=self.settings.enrichment)
            return self._enricher

    # -------------------------
    # Diagnostics
    # -------------------------
    def save_debug_info(self, page: Any) -> None:
        """Store the rendered page under DEBUG_PAGE_HTML and log its structure."""
        url = str(getattr(page, "url", "") or "")
        try:
            html = page.content()
            log.info(f"Page structure analysis: {page_structure(html)} (url={url})")
            self.kv_store.set_value(DEBUG_KEY, html, content_type="text/html")
            log.info(f"Saved full page HTML to {DEBUG_KEY} for analysis")
        except Exception as e:
            log.warning(f"Failed to save debug info: {e} (stage=diagnostics, url={url})")

    # -------------------------
    # Per-page sequence
    # -------------------------
    def _take_within_budget(self, records: List[LawyerRecord]) -> List[LawyerRecord]:
        """Admit unique records up to the remaining budget, then claim the slots."""
        limit = self.budget.remaining()
        if limit == 0:
            return []
        unique = self.dedup.take(records, limit)
        granted = self.budget.reserve(len(unique))
        # Another page may have claimed slots since remaining() was read
        self.dedup.release(unique[granted:])
        return unique[:granted]

    def _capture_session(self, page: Any, url: str) -> Optional[SessionContext]:
        try:
            return SessionContext.from_page(page)
        except Exception as e:
            log.warning(f"Could not capture browser session, keeping basic info: {e} (stage=enrich, url={url})")
            return None

    def _enrich(self, records: List[LawyerRecord], session: SessionContext, url: str) -> List[LawyerRecord]:
        log.info("Enriching lawyers with full profiles from detail pages...")
        try:
            enriched, blocked = self.enricher.enrich_counted(
                records, session, self.settings.enrichment.concurrency
            )
        except Exception as e:
            log.warning(f"Profile enrichment failed, keeping basic info: {e} (stage=enrich, url={url})")
            return records
        self.budget.add_blocked(blocked)
        return enriched

    def _save(self, records: List[LawyerRecord], url: str) -> None:
        try:
            self.dataset.push_data(records)
        except Exception:
            # Nothing was written: hand the slots and keys back before failing the page
            self.budget.release(len(records))
            self.dedup.release(records)
            log.error(f"Failed to save {len(records)} lawyers (stage=dataset, url={url})")
            raise
        log.info(f"Saved {len(records)} lawyers. Total: {self.budget.records_emitted}")

    def process_page(self, page: Any, url: str) -> PageResult:
        result = PageResult(url=url)
        if not self.pagination.should_continue(self.budget):
            result.skipped = True
            return result

        page_no = self.budget.start_page()
        log.info(f"Processing page {page_no}: {url}")

        result.challenge = self.solver.evaluate(page)
        if result.challenge == ChallengeState.FAILED:
            log.error(f"Could not bypass Cloudflare challenge (stage=challenge, url={url})")
            self.save_debug_info(page)
            return result

        page.wait_for_timeout(SETTLE_MS)

        records, method = self.pipeline.extract(page)
        result.method = method
        result.extracted = len(records)
        if not records:
            log.warning("No lawyers found with any extraction method. Saving debug info...")
            self.save_debug_info(page)
            log.warning(f"No lawyers found on this page (url={url})")
            return result
        self.budget.record_method(method)

        # Read the session while the page is still usable, before any slots are claimed
        session = self._capture_session(page, url) if self.run_input.include_contact_info else None

        to_save = self._take_within_budget(records)

        if to_save and session is not None:
            to_save = self._enrich(to_save, session, url)

        if to_save:
            self._save(to_save, url)
        result.saved = to_save

        if self.pagination.should_continue(self.budget):
            result.next_url = self.pagination.next_page(page)
        return result

    def handle_page(self, page: Any, url: str, crawler: Any = None) -> PageResult:
        """Crawler request handler: process the page and enqueue its successor."""
        result = self.process_page(page, url)
        if result.next_url and crawler is not None:
            crawler.add_requests([result.next_url])
        return result

    # -------------------------
    # Run
    # -------------------------
    def build_statistics(self) -> RunStatistics:
        return RunStatistics(
            total_lawyers_scraped=self.budget.records_emitted,
            pages_processed=self.budget.pages_processed,
            extraction_method=self.budget.extraction_method,
            duration=f"{round(self.budget.elapsed_s())} seconds",
            timestamp=datetime.now(timezone.utc),
            blocked_profiles=self.budget.blocked_profiles,
            resources=resource_usage(),
        )

    def finish(self) -> RunStatistics:
        stats = self.build_statistics()
        self.kv_store.set_value(STATISTICS_KEY, stats.model_dump(mode="json", by_alias=True))
        log.info(f"Scraping completed: {stats.model_dump(mode='json', by_alias=True)}")
        if stats.total_lawyers_scraped > 0:
            log.info(f"Successfully scraped {stats.total_lawyers_scraped} lawyers in {stats.duration}")
        else:
            log.warning("No lawyers were scraped. Please check your search parameters.")
        return stats

    def run(self) -> RunStatistics:
        """Crawl from the start URL until budgets or pages run out.

        Page-level failures are logged by the crawler; anything escaping the
        crawl itself propagates after the enrichment client is closed.
        """
        start_url = build_search_url(self.run_input)
        log.info(f"Starting scrape: {start_url}")
        log.info(
            f"Max lawyers: {self.run_input.max_lawyers or 'unlimited'}, "
            f"include contact info: {self.run_input.include_contact_info}"
        )
        crawler = self.crawler_factory(
            self.handle_page,
            settings=self.settings.crawler,
            proxy=proxy_settings(self.run_input.proxy_configuration),
        )
        try:
            crawler.run([start_url])
        finally:
            if self._enricher is not None:
                self._enricher.fetcher.close()
        return self.finish()
