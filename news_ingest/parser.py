from __future__ import annotations

import calendar
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from dateutil.parser import parse as parse_date

# Timezone abbreviations seen in RSS pubDate strings
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
    "IST": timezone(timedelta(hours=5, minutes=30)),
}

_PARSED_DATE_KEYS = ("published_parsed", "updated_parsed", "created_parsed")
_STRING_DATE_KEYS = ("isoDate", "pubDate", "published", "updated", "created", "dc_date")


def to_datetime(entry: Dict[str, Any]) -> Optional[datetime]:
    """
    Convert feed entry date fields to a timezone-aware UTC datetime.
    Priority: feedparser's *_parsed struct_times, then raw date strings, then None.
    """
    for key in _PARSED_DATE_KEYS:
        val = entry.get(key)
        if isinstance(val, time.struct_time):
            try:
                # feedparser normalizes *_parsed to UTC
                return datetime.fromtimestamp(calendar.timegm(val), tz=timezone.utc)
            except (OverflowError, ValueError, OSError):
                continue
    for key in _STRING_DATE_KEYS:
        s = entry.get(key)
        if isinstance(s, str) and s.strip():
            try:
                dt = parse_date(s.strip(), tzinfos=TZINFOS)
                if dt.tzinfo is None:
                    dt = dt.replace(tzinfo=timezone.utc)
                return dt.astimezone(timezone.utc)
            except (ValueError, OverflowError):
                continue
    return None


def _href_from_links(links: Any) -> str:
    if not isinstance(links, list) or not links:
        return ""
    for l in links:
        if isinstance(l, dict) and l.get("rel") == "alternate" and l.get("href"):
            return str(l["href"]).strip()
    first = links[0]
    if isinstance(first, dict) and first.get("href"):
        return str(first["href"]).strip()
    return ""


def pick_link(entry: Dict[str, Any]) -> str:
    """
    Resolve an entry's article link.
    Priority: link string -> guid/id string -> alternate href from a list of links.
    """
    link = entry.get("link")
    if isinstance(link, str) and link.strip():
        return link.strip()
    for k in ("guid", "id"):
        v = entry.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    if isinstance(link, list):
        return _href_from_links(link)
    return _href_from_links(entry.get("links"))


def parse_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a raw feed entry (from feedparser) to a dict with the fields a candidate needs.
    Fields: title, link, published_at (datetime|None)
    """
    title = entry.get("title")
    return {
        "title": title.strip() if isinstance(title, str) else "",
        "link": pick_link(entry),
        "published_at": to_datetime(entry),
    }
