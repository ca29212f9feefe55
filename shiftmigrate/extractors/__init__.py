"""Extractors for the legacy admin panel."""

from .base import ScrapeResult
from .session import (
    Credentials,
    LegacySession,
    SessionAuthenticator,
    extract_csrf_token,
    merge_cookies,
)
from .paginated import PaginatedScraper
from .photos import EmbeddedImage, PhotoPipeline

__all__ = [
    "ScrapeResult",
    "Credentials",
    "LegacySession",
    "SessionAuthenticator",
    "extract_csrf_token",
    "merge_cookies",
    "PaginatedScraper",
    "EmbeddedImage",
    "PhotoPipeline",
]
