from __future__ import annotations

import re
from typing import Any, Optional

from ..config import ChallengeSettings
from ..logging_config import get_logger
from ..schemas import ChallengeState


log = get_logger(__name__)

TITLE_MARKERS = [
    r"Just a moment",
    r"Cloudflare",
    r"Attention Required",
]

BODY_MARKERS = [
    r"verifying you are human",
    r"unusual traffic",
    r"checking your browser",
    r"Enable JavaScript and cookies to continue",
]

# Markers looked for in raw HTML (diagnostics, detail pages)
HTML_MARKERS = [
    r"Just a moment\s*\.\.\.",
    r"cf-browser",
    r"__cf_chl_",
]

CHALLENGE_IFRAME = 'iframe[src*="challenges.cloudflare.com"]'
CHALLENGE_CONTROL = 'input[type="checkbox"], .cf-turnstile-wrapper'
BODY_SAMPLE_CHARS = 500
BODY_TEXT_JS = f"() => (document.body && document.body.innerText || '').substring(0, {BODY_SAMPLE_CHARS})"


def _matches(patterns: list[str], text: Optional[str]) -> bool:
    if not text:
        return False
    return any(re.search(p, text, flags=re.IGNORECASE) for p in patterns)


def is_challenge_title(title: Optional[str]) -> bool:
    return _matches(TITLE_MARKERS, title)


def is_challenge_text(title: Optional[str], body_text: Optional[str]) -> bool:
    return is_challenge_title(title) or _matches(BODY_MARKERS, (body_text or "")[:BODY_SAMPLE_CHARS])


def detect_challenge_html(html: Optional[str]) -> bool:
    return _matches(HTML_MARKERS, html)


class ChallengeSolver:
    """Gate a rendered page behind the anti-bot interstitial check.

    Fresh -> (no markers) Bypassed
    Fresh -> Detected -> Solving -> re-check -> Bypassed | Detected ...
    After ``max_attempts`` remediation rounds without success -> Failed.

    Remediation never raises: a missing widget, a failed click or a
    network-idle timeout are all tolerated.
    """

    def __init__(self, settings: Optional[ChallengeSettings] = None):
        self.settings = settings or ChallengeSettings()

    def detect(self, page: Any) -> bool:
        try:
            title = page.title()
        except Exception:
            title = ""
        try:
            body_text = page.evaluate(BODY_TEXT_JS)
        except Exception:
            body_text = ""
        return is_challenge_text(title, body_text)

    def _remediate(self, page: Any) -> None:
        s = self.settings
        page.wait_for_timeout(s.settle_ms)
        try:
            frame = page.frame_locator(CHALLENGE_IFRAME)
            control = frame.locator(CHALLENGE_CONTROL)
            if control.count() > 0:
                log.info("Found Turnstile checkbox, attempting click...")
                control.first.click(timeout=s.click_timeout_ms)
                page.wait_for_timeout(s.post_click_ms)
        except Exception:
            log.debug("No clickable Turnstile element found")
        page.wait_for_timeout(s.recheck_ms)
        try:
            page.wait_for_load_state("networkidle", timeout=s.idle_timeout_ms)
        except Exception:
            pass

    def evaluate(self, page: Any) -> ChallengeState:
        state = ChallengeState.FRESH
        attempts = 0
        max_attempts = self.settings.max_attempts
        url = getattr(page, "url", "")

        while True:
            if not self.detect(page):
                if state != ChallengeState.FRESH:
                    log.info("Cloudflare challenge bypassed successfully!")
                return ChallengeState.BYPASSED
            if attempts >= max_attempts:
                log.error(f"Failed to bypass Cloudflare after {max_attempts} attempts (stage=challenge, url={url})")
                return ChallengeState.FAILED

            log.warning(f"Cloudflare challenge detected (attempt {attempts + 1}/{max_attempts})")
            state = ChallengeState.SOLVING
            try:
                self._remediate(page)
            except Exception as e:
                log.debug(f"Challenge remediation step failed: {e} (url={url})")
            attempts += 1
