from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import DEFAULT_SOURCE_LABELS
from .dedup import deduplicate
from .events import EventSink, LoggingEventSink
from .exceptions import FeedFetchError
from .fetcher import fetch_feed_entries
from .models import Candidate, Mode
from .normalizer import source_label, to_candidate
from .parser import parse_entry

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SampleOptions:
    """How many of the newest items to look at, and how many to draw from them."""
    window: int
    picks: Sequence[int]


SAMPLE_OPTIONS: Dict[Mode, SampleOptions] = {
    Mode.INITIAL: SampleOptions(window=100, picks=(10,)),
    Mode.RECURRING: SampleOptions(window=50, picks=(3, 4)),
}


def _newest_first_key(e: Dict[str, Any]) -> datetime:
    return e.get("published_at") or _EARLIEST


class FeedSampler:
    """
    Draw a bounded random sample of candidates from each configured feed.

    Pipeline per feed: fetch → parse → newest-first window → random sample → normalize.
    Across feeds: deduplicate → sort (newest first).
    """

    def __init__(
        self,
        *,
        source_labels: Optional[Mapping[str, str]] = None,
        rng: Optional[random.Random] = None,
        fetch: Callable[[str], List[Dict[str, Any]]] = fetch_feed_entries,
        events: Optional[EventSink] = None,
    ) -> None:
        self.source_labels = dict(DEFAULT_SOURCE_LABELS if source_labels is None else source_labels)
        self._rng = rng or random.Random()
        self._fetch = fetch
        self._events = events or LoggingEventSink(logger)

    def sample_feed(self, url: str, mode: Mode) -> List[Candidate]:
        """Sample one feed. Raises FeedFetchError if the feed cannot be fetched."""
        opts = SAMPLE_OPTIONS[mode]
        parsed = [parse_entry(e) for e in self._fetch(url)]

        # sorted() is stable, so undated items keep their feed order
        latest = sorted(parsed, key=_newest_first_key, reverse=True)[: opts.window]
        k = min(self._rng.choice(opts.picks), len(latest))
        picked = self._rng.sample(latest, k)

        source = source_label(url, self.source_labels)
        return [to_candidate(e, source=source) for e in picked]

    def sample(self, urls: Iterable[str], mode: Mode) -> List[Candidate]:
        mode = Mode(mode)
        items: List[Candidate] = []
        feeds = 0
        for url in urls:
            feeds += 1
            try:
                items.extend(self.sample_feed(url, mode))
            except FeedFetchError as e:
                self._events.emit("feed_failed", url=url, error=str(e))
            except Exception as e:
                self._events.emit("feed_failed", url=url, error=f"{type(e).__name__}: {e}")

        items = deduplicate(items)
        items.sort(key=lambda c: c.published_at or _EARLIEST, reverse=True)

        self._events.emit("sampled", mode=mode.value, feeds=feeds, candidates=len(items))
        return items
