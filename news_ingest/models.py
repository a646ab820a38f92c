from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


class Mode(str, enum.Enum):
    INITIAL = "initial"
    RECURRING = "recurring"


class SkipReason:
    MISSING_FIELDS = "missing_fields"
    DUPLICATE = "duplicate"
    SHORT_CONTENT = "short_content"
    BAD_SUMMARY = "bad_summary"
    DUPLICATE_RACE = "duplicate_race"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Candidate:
    """
    A normalized feed item that has not been enriched yet.

    `link` is the natural key. It may be empty when the feed item carried none;
    such candidates are skipped downstream.
    """
    title: str
    link: str
    source: str
    published_at: Optional[datetime] = None


@dataclass(frozen=True)
class ExtractedContent:
    content: str
    image: str = ""

    @classmethod
    def empty(cls) -> "ExtractedContent":
        return cls(content="", image="")


_MAX_TITLE = 300
_MAX_SUMMARY = 2000
_MAX_SOURCE = 120
_MAX_IMAGE = 2000


def _is_http_url(value: str) -> bool:
    v = value.lower()
    return v.startswith("http://") or v.startswith("https://")


@dataclass(frozen=True)
class Article:
    """
    Persistent record owned by the article store.

    WARNING: this is the shape the read API consumes. Do not change fields lightly.
    """
    title: str
    summary: str
    link: str
    source: str
    published_at: Optional[datetime] = None
    image: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        *,
        title: str,
        summary: str,
        link: str,
        source: str,
        published_at: Optional[datetime] = None,
        image: str = "",
        created_at: Optional[datetime] = None,
    ) -> "Article":
        """Trim and bound every field, and validate URLs, before the record is written."""
        link = (link or "").strip()
        if not _is_http_url(link):
            raise ValueError(f"link must be an http(s) URL: {link!r}")
        image = (image or "").strip()[:_MAX_IMAGE]
        if image and not _is_http_url(image):
            image = ""
        title = (title or "").strip()[:_MAX_TITLE]
        summary = (summary or "").strip()[:_MAX_SUMMARY]
        source = (source or "").strip()[:_MAX_SOURCE]
        if not title or not summary or not source:
            raise ValueError("Article requires title, summary and source")
        return cls(
            title=title,
            summary=summary,
            link=link,
            source=source,
            published_at=published_at,
            image=image,
            created_at=created_at or datetime.now(timezone.utc),
        )


@dataclass(frozen=True)
class Outcome:
    """Terminal result of one candidate: saved, skipped(reason) or error."""
    status: str
    reason: Optional[str] = None

    SAVED = "saved"
    SKIPPED = "skipped"
    ERROR = "error"

    @classmethod
    def saved(cls) -> "Outcome":
        return cls(cls.SAVED)

    @classmethod
    def skipped(cls, reason: str) -> "Outcome":
        return cls(cls.SKIPPED, reason)

    @classmethod
    def error(cls) -> "Outcome":
        return cls(cls.ERROR)


@dataclass
class RunStats:
    mode: Mode
    candidates: int = 0
    saved: int = 0
    errors: int = 0
    skipped: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.saved + self.errors + sum(self.skipped.values())

    def record(self, outcome: Outcome) -> None:
        if outcome.status == Outcome.SAVED:
            self.saved += 1
        elif outcome.status == Outcome.SKIPPED:
            key = outcome.reason or "unknown"
            self.skipped[key] = self.skipped.get(key, 0) + 1
        else:
            self.errors += 1

    def summary_line(self) -> str:
        skipped = ", ".join(f"{k}={v}" for k, v in sorted(self.skipped.items())) or "none"
        return (
            f"Job done ({self.mode.value}): saved={self.saved}, errors={self.errors}, "
            f"skipped={{{skipped}}}"
        )
