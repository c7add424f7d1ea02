from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from playwright.sync_api import sync_playwright

from ...config import CrawlerSettings
from ...errors import NavigationError
from ...logging_config import get_logger


log = get_logger(__name__)

EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

CHROMIUM_ARGS = [
    '--disable-dev-shm-usage',
    '--disable-gpu',
    '--disable-extensions',
    '--disable-plugins',
    '--no-first-run',
    '--disable-default-apps',
]

# Called with (page, url, crawler) once the page has loaded
RequestHandler = Callable[[Any, str, "PlaywrightCrawler"], None]
FailedRequestHandler = Callable[[str, BaseException], None]


@dataclass(frozen=True)
class CrawlStats:
    requests_started: int
    requests_finished: int
    requests_failed: int


def default_failed_request_handler(url: str, error: BaseException) -> None:
    log.error(f"Request failed: {url} - {error}")


class PlaywrightCrawler:
    """Bounded pool of headless browsers working a shared request queue.

    Each worker thread owns its own Playwright instance and browser (the
    sync API is bound to the thread that started it). Every request gets
    a fresh context and page. Navigation errors are page-scoped: they go
    to ``failed_request_handler`` and the crawl continues. There are no
    automatic retries.
    """

    def __init__(
        self,
        request_handler: RequestHandler,
        *,
        settings: Optional[CrawlerSettings] = None,
        proxy: Optional[Dict[str, str]] = None,
        failed_request_handler: Optional[FailedRequestHandler] = None,
    ) -> None:
        self.request_handler = request_handler
        self.failed_request_handler = failed_request_handler or default_failed_request_handler
        self.settings = settings or CrawlerSettings()
        self.proxy = proxy
        self._queue: "queue.Queue[str]" = queue.Queue()
        self._seen: Set[str] = set()
        self._lock = threading.Lock()
        self._pending = 0
        self._started = 0
        self._finished = 0
        self._failed = 0
        self._fatal: Optional[BaseException] = None
        self._drained = threading.Event()
        self._drained.set()
        self._stop = threading.Event()

    # -------------------------
    # Queue
    # -------------------------
    def add_requests(self, urls: Iterable[str]) -> List[str]:
        """Enqueue URLs not seen before, up to the request ceiling."""
        added: List[str] = []
        with self._lock:
            for url in urls:
                if not url or url in self._seen:
                    continue
                if len(self._seen) >= self.settings.max_requests_per_crawl:
                    log.info(f"Request limit reached ({self.settings.max_requests_per_crawl}); not enqueuing {url}")
                    break
                self._seen.add(url)
                self._pending += 1
                self._drained.clear()
                self._queue.put(url)
                added.append(url)
        return added

    @property
    def stats(self) -> CrawlStats:
        with self._lock:
            return CrawlStats(self._started, self._finished, self._failed)

    # -------------------------
    # Browser
    # -------------------------
    def _launch(self, p: Any) -> Any:
        browser_type = getattr(p, self.settings.browser, None) or p.firefox
        kwargs: Dict[str, Any] = {"headless": self.settings.headless}
        if self.settings.browser == "chromium":
            kwargs["args"] = list(CHROMIUM_ARGS)
        if self.proxy:
            kwargs["proxy"] = dict(self.proxy)
        return browser_type.launch(**kwargs)

    def _process(self, browser: Any, url: str) -> None:
        context = browser.new_context(locale="en-US")
        try:
            page = context.new_page()
            page.set_extra_http_headers(EXTRA_HEADERS)
            response = page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=int(self.settings.navigation_timeout_s * 1000),
            )
            if response is None:
                raise NavigationError("No response received", url=url)
            try:
                page.wait_for_load_state("networkidle", timeout=int(self.settings.idle_timeout_s * 1000))
            except Exception:
                pass
            self.request_handler(page, url, self)
        finally:
            context.close()

    def _done(self, ok: bool) -> None:
        with self._lock:
            if ok:
                self._finished += 1
            else:
                self._failed += 1
            self._pending -= 1
            if self._pending <= 0:
                self._drained.set()

    def _work(self, browser: Any) -> None:
        while not self._stop.is_set():
            try:
                url = self._queue.get(timeout=0.25)
            except queue.Empty:
                continue
            with self._lock:
                self._started += 1
            try:
                self._process(browser, url)
            except Exception as e:
                try:
                    self.failed_request_handler(url, e)
                finally:
                    self._done(False)
            else:
                # Follow-ups added by the handler are already counted
                self._done(True)

    def _worker(self) -> None:
        try:
            with sync_playwright() as p:
                browser = self._launch(p)
                try:
                    self._work(browser)
                finally:
                    browser.close()
        except Exception as e:
            log.error(f"Crawler worker {threading.current_thread().name} crashed: {e}")
            with self._lock:
                if self._fatal is None:
                    self._fatal = e
            self._stop.set()

    def run(self, start_urls: Iterable[str]) -> CrawlStats:
        """Crawl until no request is queued or in flight.

        A worker that cannot start or keep its browser is fatal: the other
        workers are stopped and the error is re-raised here.
        """
        self.add_requests(start_urls)
        workers = [
            threading.Thread(target=self._worker, name=f"crawler-{i}", daemon=True)
            for i in range(max(1, int(self.settings.max_concurrency)))
        ]
        for t in workers:
            t.start()
        try:
            while not self._drained.wait(timeout=0.25):
                if self._stop.is_set():
                    break
        finally:
            self._stop.set()
            for t in workers:
                t.join()
        if self._fatal is not None:
            raise self._fatal
        return self.stats
