"""Paginated resource scraper for the legacy JSON API."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from .base import ScrapeResult
from .session import LegacySession
from ..errors import LegacyRequestError, PageFetchError
from ..models.legacy import LegacyEvent, LegacySignup, LegacyUser, ScrapedDataset

logger = logging.getLogger(__name__)


class PaginatedScraper:
    """
    Fetches paged resources to exhaustion on an authenticated session.

    Each page is requested with a fixed page size. Scraping stops when a page
    is empty or carries no "next page" indicator. A failing page ends that
    resource's scrape but keeps every page already collected.
    """

    RESOURCE_PATHS = {
        "users": "/users",
        "events": "/events",
        "signups": "/event-applications",
    }

    def __init__(
        self,
        session: LegacySession,
        page_size: int = 100,
        max_pages: int = 10000,
    ):
        """
        Initialize the scraper.

        Args:
            session: Authenticated legacy session
            page_size: Records requested per page
            max_pages: Hard stop for servers that never stop paging
        """
        self.session = session
        self.page_size = page_size
        self.max_pages = max_pages

    @staticmethod
    def _page_records(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        records = data.get("resources")
        if records is None:
            records = data.get("data")
        if not isinstance(records, list):
            return []
        return records

    @staticmethod
    def _has_next(data: Dict[str, Any]) -> bool:
        if data.get("next_page_url"):
            return True
        links = data.get("links")
        return bool(isinstance(links, dict) and links.get("next"))

    def scrape_paged(
        self,
        resource: str,
        path: str,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ScrapeResult:
        """
        Scrape one resource from page 1.

        Args:
            resource: Name used in logs and errors
            path: API path of the resource index
            limit: Stop after this many records
            params: Extra query parameters

        Returns:
            ScrapeResult with records and, on failure, the page error
        """
        result = ScrapeResult(resource=resource, started_at=datetime.utcnow())
        page = 1

        while page <= self.max_pages:
            if limit is not None and len(result.records) >= limit:
                break

            per_page = self.page_size
            if limit is not None:
                per_page = min(self.page_size, limit - len(result.records))

            query = {"page": page, "perPage": per_page}
            if params:
                query.update(params)

            try:
                data = self.session.get_json(path, params=query)
            except (LegacyRequestError, requests.RequestException, ValueError) as e:
                result.error = PageFetchError(resource, page, str(e))
                logger.error(
                    f"Error scraping {resource} page {page}, keeping {len(result.records)} records: {e}"
                )
                break

            records = self._page_records(data)
            if not records:
                break

            if limit is not None:
                records = records[: limit - len(result.records)]

            result.records.extend(records)
            result.pages += 1
            logger.info(f"Scraped {resource} page {page}, total {len(result.records)}")

            if not self._has_next(data):
                break
            page += 1
        else:
            logger.warning(f"Stopped scraping {resource} at the {self.max_pages} page limit")

        result.completed_at = datetime.utcnow()
        logger.info(f"Completed scraping {len(result.records)} {resource}")
        return result

    def scrape_users(self, limit: Optional[int] = None) -> ScrapeResult:
        return self.scrape_paged("users", self.RESOURCE_PATHS["users"], limit=limit)

    def scrape_events(self) -> ScrapeResult:
        return self.scrape_paged("events", self.RESOURCE_PATHS["events"])

    def scrape_signups(self) -> ScrapeResult:
        return self.scrape_paged("signups", self.RESOURCE_PATHS["signups"])

    def fetch_resource(self, resource: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the detail view of one record, e.g. a user with every field."""
        path = f"{self.RESOURCE_PATHS.get(resource, '/' + resource)}/{record_id}"
        data = self.session.get_json(path)
        return data.get("resource")

    def scrape_all(self, user_limit: Optional[int] = None) -> ScrapedDataset:
        """
        Scrape users, events and signups concurrently.

        The three collections are independent reads on the same session; the
        session serializes cookie updates. Records are normalized to the
        canonical legacy dataclasses here, once.
        """
        started_at = datetime.utcnow()

        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="scrape") as pool:
            users_future = pool.submit(self.scrape_users, user_limit)
            events_future = pool.submit(self.scrape_events)
            signups_future = pool.submit(self.scrape_signups)

            users = users_future.result()
            events = events_future.result()
            signups = signups_future.result()

        results = [users, events, signups]
        dataset = ScrapedDataset(
            users=[LegacyUser.from_raw(r) for r in users.records],
            events=[LegacyEvent.from_raw(r) for r in events.records],
            signups=[LegacySignup.from_raw(r) for r in signups.records],
            metadata={
                "scraped_at": started_at.isoformat(),
                "base_url": self.session.base_url,
                "resources": {r.resource: r.to_dict() for r in results},
                "page_errors": [r.error.to_dict() for r in results if r.error],
            },
        )

        logger.info(
            f"Scraped {len(dataset.users)} users, {len(dataset.events)} events, "
            f"{len(dataset.signups)} signups"
        )
        return dataset
