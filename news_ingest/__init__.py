"""
news_ingest

Samples RSS/Atom feeds, scrapes each sampled article's text and image, summarizes
it with an OpenAI-compatible model, and stores deduplicated, expiring records.

Core ideas:
- Input: feed URLs and a run mode (initial fill or recurring top-up)
- Process: sample → duplicate check → extract → summarize → store, five at a time
- Output: RunStats (saved, errors, skips by reason)

Example
-------
from news_ingest import IngestionPipeline, MemoryArticleStore, Mode, Settings

settings = Settings.from_env()
pipeline = IngestionPipeline.from_settings(settings, MemoryArticleStore())

stats = pipeline.run(Mode.INITIAL)
print(stats.summary_line())
"""
from .config import Settings
from .events import EventSink, LoggingEventSink, MemoryEventSink, NullEventSink
from .exceptions import DuplicateArticleError, FeedFetchError, StoreError
from .extractor import ContentExtractor
from .models import Article, Candidate, ExtractedContent, Mode, Outcome, RunStats, SkipReason
from .pipeline import IngestionPipeline
from .sampler import FeedSampler
from .store import ArticleStore, MemoryArticleStore, PostgresArticleStore
from .summarizers import ModelRotation, Summarizer

__all__ = [
    "Article",
    "ArticleStore",
    "Candidate",
    "ContentExtractor",
    "DuplicateArticleError",
    "EventSink",
    "ExtractedContent",
    "FeedFetchError",
    "FeedSampler",
    "IngestionPipeline",
    "LoggingEventSink",
    "MemoryArticleStore",
    "MemoryEventSink",
    "Mode",
    "ModelRotation",
    "NullEventSink",
    "Outcome",
    "PostgresArticleStore",
    "RunStats",
    "Settings",
    "SkipReason",
    "StoreError",
    "Summarizer",
]
