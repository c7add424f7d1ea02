from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

import httpx

from ...logging_config import get_logger


log = get_logger(__name__)

DEFAULT_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) Gecko/20100101 Firefox/128.0"
USER_AGENT_JS = "() => navigator.userAgent"


@dataclass(frozen=True)
class SessionContext:
    """Browser session credentials reused for out-of-browser requests."""
    cookie_header: str = ""
    user_agent: str = ""
    cookie_count: int = 0

    @classmethod
    def from_cookies(cls, cookies: Iterable[Mapping[str, Any]], user_agent: str = "") -> "SessionContext":
        cookies = list(cookies or [])
        header = "; ".join(f"{c.get('name')}={c.get('value')}" for c in cookies if c.get("name"))
        return cls(cookie_header=header, user_agent=user_agent or "", cookie_count=len(cookies))

    @classmethod
    def from_page(cls, page: Any) -> "SessionContext":
        """Capture cookies and user agent from a live Playwright page."""
        cookies = page.context.cookies()
        try:
            user_agent = page.evaluate(USER_AGENT_JS) or ""
        except Exception:
            user_agent = ""
        ctx = cls.from_cookies(cookies, user_agent)
        log.debug(f"Using {ctx.cookie_count} cookies from browser session for profile pages")
        return ctx


@dataclass(frozen=True)
class FetchResult:
    url: str
    status_code: int
    html: str | None
    headers: dict[str, str] = field(default_factory=dict)
    error: str | None = None


class ProfileFetcher:
    """Out-of-browser HTML fetcher for lawyer detail pages.

    - Uses httpx for network IO (one pooled client, safe across threads)
    - Sends the browser session's cookies and user agent
    - Retries transport-level failures; HTTP statuses are returned as-is
    - Does NOT execute JavaScript
    """

    def __init__(
        self,
        *,
        timeout_s: float = 15.0,
        retries: int = 1,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout_s = timeout_s
        self.retries = max(0, int(retries))
        self._client = client or httpx.Client(timeout=self.timeout_s, follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    def _headers(self, session: SessionContext) -> Dict[str, str]:
        headers = {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "User-Agent": session.user_agent or DEFAULT_UA,
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "same-origin",
        }
        if session.cookie_header:
            headers["Cookie"] = session.cookie_header
        return headers

    def fetch(self, url: str, session: Optional[SessionContext] = None) -> FetchResult:
        headers = self._headers(session or SessionContext())
        last_error: str | None = None
        for attempt in range(self.retries + 1):
            try:
                resp = self._client.get(url, headers=headers, timeout=self.timeout_s)
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"
                log.debug(f"Profile fetch attempt {attempt + 1} failed for {url}: {last_error}")
                continue
            return FetchResult(
                url=str(resp.request.url),
                status_code=resp.status_code,
                html=resp.text,
                headers={k: v for k, v in resp.headers.items()},
            )
        return FetchResult(url=url, status_code=0, html=None, error=last_error)
