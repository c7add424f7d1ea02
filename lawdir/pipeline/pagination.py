from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urljoin, urlparse

from selectolax.parser import HTMLParser

from ..logging_config import get_logger
from .budget import RunBudget


log = get_logger(__name__)

NEXT_SELECTOR = 'a[rel="next"], .next-page, [class*="next"]'


def _is_absolute_http(url: str) -> bool:
    p = urlparse(url)
    return p.scheme in ("http", "https") and bool(p.netloc)


class PaginationController:
    """Finds the next listing page and decides whether the run goes on.

    The disabled check is a class-token heuristic on the first "next"
    control; markup that signals disabled state differently is not caught.
    """

    def __init__(self, next_selector: str = NEXT_SELECTOR):
        self.next_selector = next_selector

    def next_page(self, page: Any) -> Optional[str]:
        try:
            parser = HTMLParser(page.content())
            base = str(getattr(page, "url", "") or "")
        except Exception as e:
            log.warning(f"Could not inspect pagination: {e} (stage=pagination, url={getattr(page, 'url', '')})")
            return None

        control = parser.css_first(self.next_selector)
        if control is None:
            log.info("No next page button found - this may be the last page")
            return None
        attrs = control.attributes or {}
        classes = (attrs.get("class") or "").split()
        if "disabled" in classes:
            log.info("Next page control is disabled - this is the last page")
            return None

        href = (attrs.get("href") or "").strip()
        if not href:
            return None
        url = urljoin(base, href) if base else href
        if not _is_absolute_http(url):
            log.debug(f"Ignoring malformed next page link: {href!r}")
            return None
        log.info(f"Found next page: {url}")
        return url

    def should_continue(self, budget: RunBudget) -> bool:
        if budget.records_exhausted():
            log.info(f"Reached maximum lawyers limit: {budget.max_records}")
            return False
        if budget.pages_exhausted():
            log.info(f"Reached page limit: {budget.max_pages}")
            return False
        return True
