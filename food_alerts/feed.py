"""
Paginated JSON feed client for the upstream alert API.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import requests

from food_alerts.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from util.logging_util import setup_logger

logger = setup_logger(__name__)

RECORD_KEYS = ["value", "records"]
NEXT_LINK_KEYS = ["@odata.nextLink", "nextLink"]


class FeedFetchError(Exception):
    """A feed page could not be fetched or decoded."""


@dataclass
class FeedPage:
    url: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    next_url: Optional[str] = None


def extract_records(body: Any) -> List[Dict[str, Any]]:
    if not isinstance(body, dict):
        return []
    for key in RECORD_KEYS:
        records = body.get(key)
        if isinstance(records, list):
            return records
    return []


def next_link(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    for key in NEXT_LINK_KEYS:
        link = body.get(key)
        if link:
            return str(link)
    return None


def fetch_page(url: str, timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS) -> FeedPage:
    """Fetch one page of the feed.

    Raises FeedFetchError on transport errors, non-2xx responses or a body
    that is not JSON.
    """
    try:
        resp = requests.get(url, timeout=timeout, headers={"Accept": "application/json"})
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FeedFetchError(f"Failed to fetch {url}: {e}") from e

    try:
        body = resp.json()
    except ValueError as e:
        raise FeedFetchError(f"Invalid JSON from {url}: {e}") from e

    return FeedPage(url=url, records=extract_records(body), next_url=next_link(body))


def iter_pages(start_url: str, page_limit: int,
               timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS) -> Iterator[FeedPage]:
    """Yield pages by following next links, at most `page_limit` of them."""
    url: Optional[str] = start_url
    pages = 0
    while url and pages < page_limit:
        page = fetch_page(url, timeout)
        pages += 1
        logger.info(f"Fetched page {pages} with {len(page.records)} records")
        yield page
        url = page.next_url
