from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from .models import Candidate


def site_from_url(url: str, default: Optional[str] = None) -> str:
    """
    Derive a display label from a URL's hostname.

    "https://www.times-of-india.com/rss" -> "Times Of India"
    """
    try:
        host = (urlparse(url or "").hostname or "").lower()
    except ValueError:
        host = ""
    if host.startswith("www."):
        host = host[4:]
    name = host.split(".")[0] if host else ""
    if not name:
        return url if default is None else default
    name = re.sub(r"[-_]+", " ", name)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), name)


def source_label(feed_url: str, labels: Mapping[str, str]) -> str:
    return labels.get(feed_url) or site_from_url(feed_url)


def to_candidate(entry: Dict[str, Any], *, source: str) -> Candidate:
    """
    Convert a parsed entry dict into a Candidate.

    Missing title/link are kept as empty strings; the pipeline decides what to
    do with incomplete candidates.
    """
    return Candidate(
        title=entry.get("title") or "",
        link=entry.get("link") or "",
        source=source,
        published_at=entry.get("published_at"),
    )
