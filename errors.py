# errors.py
from typing import Optional


class ScraperError(Exception):
    """Base class for all errors raised while scraping otakudesu."""


class TransportError(ScraperError):
    """Upstream request failed. status_code is None when no response arrived."""

    def __init__(self, status_code: Optional[int], url: str, message: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(message or f"Request to {url} failed with status {status_code}")


class EmptyResultError(ScraperError):
    """Page was fetched but nothing could be extracted from it."""


class MalformedIdError(ScraperError, ValueError):
    """Opaque id was not produced by the codec."""
