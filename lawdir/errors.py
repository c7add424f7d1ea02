"""Exception types for the lawyers scraper."""

from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base error carrying the URL and pipeline stage it happened in."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> None:
        self.message = message
        self.url = url
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        context_parts: list[str] = []
        if self.stage:
            context_parts.append(f"stage={self.stage}")
        if self.url:
            context_parts.append(f"url={self.url}")
        if context_parts:
            return f"{self.message} ({', '.join(context_parts)})"
        return self.message


class InputValidationError(ScraperError):
    """Run input is missing required parameters or out of range."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="input")


class ConfigError(ScraperError):
    """Settings file is missing or not valid YAML."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="config")


class NavigationError(ScraperError):
    """A listing page could not be loaded."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message, url=url, stage="navigation")
