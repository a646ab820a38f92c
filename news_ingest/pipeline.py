from __future__ import annotations

import concurrent.futures as _fut
import logging
import threading
import time
from typing import Callable, List, Optional, Sequence

from .config import Settings
from .events import EventSink, LoggingEventSink
from .exceptions import DuplicateArticleError
from .extractor import ContentExtractor
from .models import Article, Candidate, Mode, Outcome, RunStats, SkipReason
from .normalizer import site_from_url
from .sampler import FeedSampler
from .store import ArticleStore
from .summarizers import Summarizer

logger = logging.getLogger(__name__)

MIN_CONTENT_LEN = 200
MIN_SUMMARY_LEN = 10
DEFAULT_CONCURRENCY = 5


class IngestionPipeline:
    """
    Run one ingestion pass: sample feeds, then drive every candidate through
    duplicate check → extraction → summarization → persistence on a bounded pool.

    Every candidate ends in exactly one outcome (saved, skipped(reason) or error),
    so `stats.total == stats.candidates` after each run.
    """

    def __init__(
        self,
        *,
        sampler: FeedSampler,
        extractor: ContentExtractor,
        summarizer: Summarizer,
        store: ArticleStore,
        feed_urls: Sequence[str],
        concurrency: int = DEFAULT_CONCURRENCY,
        events: Optional[EventSink] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sampler = sampler
        self.extractor = extractor
        self.summarizer = summarizer
        self.store = store
        self.feed_urls = list(feed_urls)
        self.concurrency = max(1, int(concurrency or 1))
        self._events = events or LoggingEventSink(logger)
        self._clock = clock
        self._stop = threading.Event()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: ArticleStore,
        *,
        events: Optional[EventSink] = None,
    ) -> "IngestionPipeline":
        events = events or LoggingEventSink()
        return cls(
            sampler=FeedSampler(source_labels=settings.source_labels, events=events),
            extractor=ContentExtractor(events=events),
            summarizer=Summarizer.from_settings(settings, events=events),
            store=store,
            feed_urls=settings.feed_urls,
            concurrency=settings.concurrency,
            events=events,
        )

    def stop(self) -> None:
        """
        Ask in-flight candidates to stop before their next stage. Writes already started finish.

        The flag is never reset: a stopped pipeline cancels every candidate of any later run.
        """
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def process(self, candidate: Candidate) -> Outcome:
        """Run one candidate to its terminal outcome. Never raises."""
        t0 = self._clock()
        try:
            if not candidate.link or not candidate.title:
                return Outcome.skipped(SkipReason.MISSING_FIELDS)
            if self.stopping:
                return Outcome.skipped(SkipReason.CANCELLED)

            # fast path before spending a page fetch and a model call
            if self.store.exists(candidate.link):
                return Outcome.skipped(SkipReason.DUPLICATE)
            if self.stopping:
                return Outcome.skipped(SkipReason.CANCELLED)

            extracted = self.extractor.extract(candidate.link)
            if not extracted.content or len(extracted.content) < MIN_CONTENT_LEN:
                return Outcome.skipped(SkipReason.SHORT_CONTENT)
            if self.stopping:
                return Outcome.skipped(SkipReason.CANCELLED)

            summary = self.summarizer.summarize(extracted.content)
            if not summary or len(summary) < MIN_SUMMARY_LEN:
                return Outcome.skipped(SkipReason.BAD_SUMMARY)
            if self.stopping:
                return Outcome.skipped(SkipReason.CANCELLED)

            article = Article.build(
                title=candidate.title,
                summary=summary,
                link=candidate.link,
                source=candidate.source or site_from_url(candidate.link, default="Unknown"),
                published_at=candidate.published_at,
                image=extracted.image,
            )
            try:
                self.store.insert(article)
            except DuplicateArticleError:
                return Outcome.skipped(SkipReason.DUPLICATE_RACE)

            elapsed_ms = int((self._clock() - t0) * 1000)
            self._events.emit("saved", title=candidate.title, link=candidate.link, elapsed_ms=elapsed_ms)
            return Outcome.saved()
        except Exception as e:
            self._events.emit(
                "candidate_failed",
                title=candidate.title or candidate.link,
                link=candidate.link,
                error=f"{type(e).__name__}: {e}",
            )
            return Outcome.error()

    def run(self, mode: Mode = Mode.RECURRING, timeout: Optional[float] = None) -> RunStats:
        mode = Mode(mode)
        stats = RunStats(mode=mode)

        candidates = self.sampler.sample(self.feed_urls, mode)
        if not candidates:
            self._events.emit("no_candidates", mode=mode.value)
            return stats
        stats.candidates = len(candidates)

        outcomes: List[Outcome] = []
        with _fut.ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="ingest") as ex:
            futures = [ex.submit(self.process, c) for c in candidates]
            _, not_done = _fut.wait(futures, timeout=timeout)
            if not_done:
                self.stop()
                self._events.emit("run_cancelled", mode=mode.value, pending=len(not_done))
            for fu in futures:
                # process() never raises; result() blocks until the pool has drained
                outcomes.append(fu.result())

        for outcome in outcomes:
            stats.record(outcome)
        self._events.emit(
            "run_finished",
            summary=stats.summary_line(),
            saved=stats.saved,
            errors=stats.errors,
            skipped=dict(stats.skipped),
        )
        return stats
