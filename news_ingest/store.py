"""
Article persistence.

The link column is unique; that constraint is the only guard against two
concurrent ingestions writing the same article. `insert` reports a violation as
DuplicateArticleError so callers can tell a lost race apart from a failure.
Articles expire a fixed time after creation.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Protocol

import psycopg
from psycopg import errors as pg_errors

from .exceptions import DuplicateArticleError, StoreError
from .models import Article

DEFAULT_TTL = timedelta(hours=24)


class ArticleStore(Protocol):
    def exists(self, link: str) -> bool:  # pragma: no cover - interface
        ...

    def insert(self, article: Article) -> None:  # pragma: no cover - interface
        ...

    def count(self) -> int:  # pragma: no cover - interface
        ...

    def purge_expired(self, now: Optional[datetime] = None) -> int:  # pragma: no cover - interface
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryArticleStore:
    """In-process store keyed by link. Expired articles are invisible and purged lazily."""

    def __init__(self, ttl: timedelta = DEFAULT_TTL) -> None:
        self.ttl = ttl
        self._lock = threading.Lock()
        self._articles: Dict[str, Article] = {}

    def _live(self, article: Article, now: datetime) -> bool:
        return article.created_at > now - self.ttl

    def exists(self, link: str) -> bool:
        now = _utcnow()
        with self._lock:
            article = self._articles.get(link)
            return article is not None and self._live(article, now)

    def insert(self, article: Article) -> None:
        now = _utcnow()
        with self._lock:
            existing = self._articles.get(article.link)
            if existing is not None and self._live(existing, now):
                raise DuplicateArticleError(f"Article already stored: {article.link}")
            self._articles[article.link] = article

    def get(self, link: str) -> Optional[Article]:
        now = _utcnow()
        with self._lock:
            article = self._articles.get(link)
            return article if article is not None and self._live(article, now) else None

    def count(self) -> int:
        now = _utcnow()
        with self._lock:
            return sum(1 for a in self._articles.values() if self._live(a, now))

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or _utcnow()
        with self._lock:
            stale = [link for link, a in self._articles.items() if not self._live(a, now)]
            for link in stale:
                del self._articles[link]
            return len(stale)


SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS articles (
      id BIGSERIAL PRIMARY KEY,
      title VARCHAR(300) NOT NULL,
      summary VARCHAR(2000) NOT NULL,
      link TEXT NOT NULL UNIQUE,
      source VARCHAR(120) NOT NULL,
      pub_date TIMESTAMPTZ,
      image VARCHAR(2000) NOT NULL DEFAULT '',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_articles_created_at ON articles (created_at);",
    "CREATE INDEX IF NOT EXISTS idx_articles_source_pub_date ON articles (source, pub_date DESC);",
]


class PostgresArticleStore:
    """psycopg-backed store. Each call opens its own connection, so it is safe across worker threads."""

    def __init__(self, pg_dsn: str, ttl: timedelta = DEFAULT_TTL) -> None:
        self.pg_dsn = pg_dsn
        self.ttl = ttl

    def _connect(self, **kwargs):
        try:
            return psycopg.connect(self.pg_dsn, **kwargs)
        except psycopg.OperationalError as e:
            raise StoreError(f"Cannot connect to article store: {e}") from e

    def ensure_schema(self) -> None:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                for stmt in SCHEMA_STATEMENTS:
                    cur.execute(stmt)

    def exists(self, link: str) -> bool:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM articles WHERE link = %s AND created_at > %s LIMIT 1",
                    (link, _utcnow() - self.ttl),
                )
                return cur.fetchone() is not None

    def insert(self, article: Article) -> None:
        """Insert one article atomically. An expired row with the same link is replaced."""
        cutoff = _utcnow() - self.ttl
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "DELETE FROM articles WHERE link = %s AND created_at <= %s",
                        (article.link, cutoff),
                    )
                    cur.execute(
                        """
                        INSERT INTO articles (title, summary, link, source, pub_date, image, created_at)
                        VALUES (%(title)s, %(summary)s, %(link)s, %(source)s, %(pub_date)s, %(image)s, %(created_at)s)
                        """,
                        {
                            "title": article.title,
                            "summary": article.summary,
                            "link": article.link,
                            "source": article.source,
                            "pub_date": article.published_at,
                            "image": article.image,
                            "created_at": article.created_at,
                        },
                    )
        except pg_errors.UniqueViolation as e:
            raise DuplicateArticleError(f"Article already stored: {article.link}") from e

    def count(self) -> int:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM articles WHERE created_at > %s", (_utcnow() - self.ttl,))
                row = cur.fetchone()
                return int(row[0] or 0) if row else 0

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or _utcnow()) - self.ttl
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM articles WHERE created_at <= %s", (cutoff,))
                return cur.rowcount or 0
