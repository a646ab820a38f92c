from __future__ import annotations

from typing import Any, Dict, List

import feedparser
import requests

from .exceptions import FeedFetchError

FEED_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64)",
    "Accept": "application/rss+xml,application/xml",
}
FEED_TIMEOUT_SEC = 15


def fetch_feed_entries(url: str, *, timeout: float = FEED_TIMEOUT_SEC) -> List[Dict[str, Any]]:
    """
    Fetch a single feed URL and return its entries in feed order.

    Raises FeedFetchError on network/HTTP errors, or when the feed is malformed
    (bozo) and yielded no entries at all. A bozo feed that still parsed entries
    is accepted; feeds with minor encoding issues are common.
    """
    try:
        resp = requests.get(url, headers=FEED_HEADERS, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FeedFetchError(f"Failed to fetch feed: {url} ({e})") from e

    feed = feedparser.parse(resp.content)
    entries = getattr(feed, "entries", None)
    if not isinstance(entries, list):
        raise FeedFetchError(f"Feed has no entries: {url}")

    if getattr(feed, "bozo", 0) and not entries:
        exc = getattr(feed, "bozo_exception", None)
        msg = f"Invalid RSS/Atom feed: {url}"
        if exc:
            msg += f" ({exc})"
        raise FeedFetchError(msg)
    return entries
