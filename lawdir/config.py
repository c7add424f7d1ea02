"""
Run input and settings.

The run input says *what* to scrape (a start URL, or a practice area and
state to build one from, and how many lawyers to keep). Settings say *how*
(crawler pool size, challenge timings, enrichment concurrency, logging)
and come from an optional YAML file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigError, InputValidationError
from .logging_config import get_logger


log = get_logger(__name__)

BASE_ORIGIN = "https://www.avvo.com"
SEARCH_URL_TEMPLATE = BASE_ORIGIN + "/{practice_area}-lawyer/{city}{state}.html"
DEFAULT_PRACTICE_AREA = "bankruptcy-debt"
DEFAULT_STATE = "al"
MAX_LAWYERS_LIMIT = 10000


class RunInput(BaseModel):
    """Validated actor-style run input (camelCase keys accepted)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_url: Optional[str] = Field(default=None, alias="startUrl")
    practice_area: Optional[str] = Field(default=None, alias="practiceArea")
    state: Optional[str] = None
    city: Optional[str] = None
    max_lawyers: int = Field(default=50, alias="maxLawyers")
    include_contact_info: bool = Field(default=False, alias="includeContactInfo")
    proxy_configuration: Dict[str, Any] = Field(
        default_factory=lambda: {"useApifyProxy": True},
        alias="proxyConfiguration",
    )

    @model_validator(mode="after")
    def check_target_and_budget(self):
        has_url = bool((self.start_url or "").strip())
        has_search = bool((self.practice_area or "").strip()) and bool((self.state or "").strip())
        if not has_url and not has_search:
            raise ValueError('Invalid input: Either provide a "startUrl" OR both "practiceArea" and "state"')
        if self.max_lawyers < 0 or self.max_lawyers > MAX_LAWYERS_LIMIT:
            raise ValueError(f"maxLawyers must be between 0 and {MAX_LAWYERS_LIMIT}")
        return self

    @property
    def unbounded(self) -> bool:
        return self.max_lawyers == 0


def parse_run_input(data: Optional[Dict[str, Any]]) -> RunInput:
    """Validate a raw input mapping, raising InputValidationError on failure."""
    try:
        return RunInput.model_validate(data or {})
    except ValidationError as e:
        messages = []
        for err in e.errors():
            msg = str(err.get("msg", ""))
            # pydantic prefixes model-level ValueErrors with "Value error, "
            messages.append(msg.replace("Value error, ", "", 1))
        raise InputValidationError("; ".join(messages) or str(e)) from e


def load_run_input(path: Path, overrides: Optional[Dict[str, Any]] = None) -> RunInput:
    """Read run input from a JSON or YAML file and apply CLI overrides."""
    data: Dict[str, Any] = {}
    if path is not None:
        if not path.exists() or not path.is_file():
            raise InputValidationError(f"input file not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InputValidationError(f"invalid input file {path}: {e}") from e
        if not isinstance(data, dict):
            raise InputValidationError(f"input file {path} must contain a mapping")
    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value
    return parse_run_input(data)


def build_search_url(run_input: RunInput) -> str:
    """Return the start URL, synthesizing a search URL when none was given."""
    if run_input.start_url and run_input.start_url.strip():
        log.info("Using provided start URL directly")
        return run_input.start_url.strip()

    practice_area = (run_input.practice_area or DEFAULT_PRACTICE_AREA).strip()
    state = (run_input.state or DEFAULT_STATE).strip().lower()
    city = ""
    if run_input.city and run_input.city.strip():
        city = "-".join(run_input.city.strip().lower().split()) + "-"

    url = SEARCH_URL_TEMPLATE.format(practice_area=practice_area, city=city, state=state)
    log.info(f"Built search URL: {url}")
    return url


def proxy_settings(proxy_configuration: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """Translate an actor proxy configuration into a Playwright proxy dict.

    Only explicit ``proxyUrls`` can be honoured outside the hosted platform.
    """
    cfg = proxy_configuration or {}
    urls = cfg.get("proxyUrls") or []
    if urls:
        p = urlparse(str(urls[0]))
        server = f"{p.scheme or 'http'}://{p.hostname}"
        if p.port:
            server += f":{p.port}"
        out = {"server": server}
        if p.username:
            out["username"] = unquote(p.username)
        if p.password:
            out["password"] = unquote(p.password)
        return out
    if cfg.get("useApifyProxy"):
        log.warning("useApifyProxy requested but no platform proxy is available; running without proxy")
    return None


@dataclass
class CrawlerSettings:
    max_concurrency: int = 3
    max_requests_per_crawl: int = 20
    navigation_timeout_s: float = 30.0
    idle_timeout_s: float = 10.0
    browser: str = "firefox"
    headless: bool = True


@dataclass
class ChallengeSettings:
    max_attempts: int = 3
    settle_ms: int = 3000
    click_timeout_ms: int = 5000
    post_click_ms: int = 3000
    recheck_ms: int = 5000
    idle_timeout_ms: int = 15000


@dataclass
class EnrichmentSettings:
    concurrency: int = 10
    timeout_s: float = 15.0
    retries: int = 1
    batch_pause_s: float = 0.2


@dataclass
class Settings:
    crawler: CrawlerSettings = field(default_factory=CrawlerSettings)
    challenge: ChallengeSettings = field(default_factory=ChallengeSettings)
    enrichment: EnrichmentSettings = field(default_factory=EnrichmentSettings)
    log_level: Optional[str] = None
    log_file: Optional[str] = None


def _section(cfg: dict, name: str) -> dict:
    sec = cfg.get(name, {}) if isinstance(cfg, dict) else {}
    return sec if isinstance(sec, dict) else {}


def _pick(cls, values: dict):
    known = {k: v for k, v in values.items() if k in cls.__dataclass_fields__ and v is not None}
    return cls(**known)


def settings_from_dict(cfg: Optional[dict]) -> Settings:
    cfg = cfg or {}
    logging_cfg = _section(cfg, "logging")
    try:
        return Settings(
            crawler=_pick(CrawlerSettings, _section(cfg, "crawler")),
            challenge=_pick(ChallengeSettings, _section(cfg, "challenge")),
            enrichment=_pick(EnrichmentSettings, _section(cfg, "enrichment")),
            log_level=logging_cfg.get("level"),
            log_file=logging_cfg.get("file"),
        )
    except TypeError as e:
        raise ConfigError(f"invalid settings: {e}") from e


def load_settings(config_path: Optional[Path]) -> Settings:
    """Load settings from YAML; no path means defaults."""
    if config_path is None:
        return Settings()
    if not config_path.exists() or not config_path.is_file():
        raise ConfigError(f"file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    return settings_from_dict(cfg)
