"""Tests for news_ingest.store module."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from psycopg import errors as pg_errors

from news_ingest.exceptions import DuplicateArticleError
from news_ingest.models import Article
from news_ingest.store import MemoryArticleStore, PostgresArticleStore


def article(link="https://a.com/1", created_at=None) -> Article:
    return Article.build(
        title="Title",
        summary="A summary long enough.",
        link=link,
        source="A",
        created_at=created_at,
    )


class TestArticleBuild:
    def test_rejects_non_http_link(self) -> None:
        with pytest.raises(ValueError):
            article(link="ftp://a.com/1")

    def test_drops_non_http_image_and_truncates(self) -> None:
        a = Article.build(
            title="T" * 400, summary="S", link="https://a.com/1", source="A", image="javascript:alert(1)"
        )
        assert a.image == ""
        assert len(a.title) == 300


class TestMemoryArticleStore:
    def test_insert_then_exists(self) -> None:
        store = MemoryArticleStore()
        store.insert(article())
        assert store.exists("https://a.com/1")
        assert not store.exists("https://a.com/2")
        assert store.count() == 1

    def test_second_insert_is_duplicate(self) -> None:
        store = MemoryArticleStore()
        store.insert(article())
        with pytest.raises(DuplicateArticleError):
            store.insert(article())

    def test_expired_articles_are_invisible_and_replaceable(self) -> None:
        store = MemoryArticleStore(ttl=timedelta(hours=24))
        old = datetime.now(timezone.utc) - timedelta(hours=25)
        store.insert(article(created_at=old))
        assert not store.exists("https://a.com/1")
        assert store.count() == 0
        store.insert(article())
        assert store.exists("https://a.com/1")

    def test_purge_expired(self) -> None:
        store = MemoryArticleStore(ttl=timedelta(hours=1))
        store.insert(article("https://a.com/old", created_at=datetime.now(timezone.utc) - timedelta(hours=2)))
        store.insert(article("https://a.com/new"))
        assert store.purge_expired() == 1
        assert store.get("https://a.com/new") is not None


def fake_connection(execute):
    cur = MagicMock()
    cur.__enter__.return_value = cur
    cur.execute.side_effect = execute
    conn = MagicMock()
    conn.__enter__.return_value = conn
    conn.cursor.return_value = cur
    return conn, cur


class TestPostgresArticleStore:
    @patch("news_ingest.store.psycopg.connect")
    def test_unique_violation_becomes_duplicate_error(self, mock_connect) -> None:
        def execute(sql, params=None):
            if "INSERT" in sql:
                raise pg_errors.UniqueViolation("duplicate key value violates unique constraint")

        conn, _ = fake_connection(execute)
        mock_connect.return_value = conn
        with pytest.raises(DuplicateArticleError):
            PostgresArticleStore("dbname=test").insert(article())

    @patch("news_ingest.store.psycopg.connect")
    def test_insert_replaces_expired_row_first(self, mock_connect) -> None:
        conn, cur = fake_connection(None)
        mock_connect.return_value = conn
        PostgresArticleStore("dbname=test").insert(article())
        statements = [c.args[0] for c in cur.execute.call_args_list]
        assert statements[0].startswith("DELETE FROM articles WHERE link")
        assert "INSERT INTO articles" in statements[1]

    @patch("news_ingest.store.psycopg.connect")
    def test_other_errors_propagate(self, mock_connect) -> None:
        def execute(sql, params=None):
            raise pg_errors.NotNullViolation("null value")

        conn, _ = fake_connection(execute)
        mock_connect.return_value = conn
        with pytest.raises(pg_errors.NotNullViolation):
            PostgresArticleStore("dbname=test").insert(article())

    @patch("news_ingest.store.psycopg.connect")
    def test_exists(self, mock_connect) -> None:
        conn, cur = fake_connection(None)
        cur.fetchone.return_value = (1,)
        mock_connect.return_value = conn
        assert PostgresArticleStore("dbname=test").exists("https://a.com/1")
