"""Tests for news_ingest.fetcher, news_ingest.dedup and news_ingest.sampler."""

import random
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from news_ingest.dedup import deduplicate
from news_ingest.exceptions import FeedFetchError
from news_ingest.fetcher import fetch_feed_entries
from news_ingest.models import Candidate, Mode
from news_ingest.sampler import FeedSampler

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

RSS = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Example</title>
<item><title>First</title><link>https://example.com/1</link>
<pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate></item>
<item><title>Second</title><guid>https://example.com/2</guid></item>
</channel></rss>
"""


def make_entries(prefix: str, n: int):
    return [
        {
            "title": f"{prefix} story {i}",
            "link": f"https://{prefix}.com/story/{i}",
            "published": (BASE - timedelta(minutes=i)).isoformat(),
        }
        for i in range(n)
    ]


class TestFetchFeedEntries:
    @patch("news_ingest.fetcher.requests.get")
    def test_parses_entries(self, mock_get) -> None:
        mock_get.return_value = Mock(content=RSS, raise_for_status=Mock())
        entries = fetch_feed_entries("https://example.com/rss")
        assert [e["title"] for e in entries] == ["First", "Second"]

    @patch("news_ingest.fetcher.requests.get")
    def test_network_error_raises_feed_error(self, mock_get) -> None:
        mock_get.side_effect = requests.ConnectionError("down")
        with pytest.raises(FeedFetchError):
            fetch_feed_entries("https://example.com/rss")

    @patch("news_ingest.fetcher.requests.get")
    def test_malformed_feed_without_entries_raises(self, mock_get) -> None:
        mock_get.return_value = Mock(content=b"<html><body>nope", raise_for_status=Mock())
        with pytest.raises(FeedFetchError):
            fetch_feed_entries("https://example.com/rss")


class TestDeduplicate:
    def test_by_link_keeps_first(self) -> None:
        a = Candidate(title="A", link="https://x.com/1", source="X")
        b = Candidate(title="B", link="https://x.com/1", source="Y")
        assert deduplicate([a, b]) == [a]

    def test_by_title_and_source_without_link(self) -> None:
        a = Candidate(title="A", link="", source="X")
        b = Candidate(title="A", link="", source="X")
        c = Candidate(title="A", link="", source="Y")
        assert deduplicate([a, b, c]) == [a, c]


class TestFeedSampler:
    def _sampler(self, feeds, events, seed=7):
        return FeedSampler(source_labels={}, rng=random.Random(seed), fetch=lambda url: feeds[url], events=events)

    def test_initial_draws_ten_from_newest_hundred(self, events) -> None:
        feeds = {"https://alpha.com/rss": make_entries("alpha", 150)}
        out = self._sampler(feeds, events).sample(list(feeds), Mode.INITIAL)
        assert len(out) == 10
        indices = [int(c.link.rsplit("/", 1)[1]) for c in out]
        assert all(i < 100 for i in indices)

    def test_recurring_draws_three_or_four_from_newest_fifty(self, events) -> None:
        feeds = {"https://alpha.com/rss": make_entries("alpha", 120)}
        sizes = set()
        for seed in range(30):
            out = self._sampler(feeds, events, seed=seed).sample(list(feeds), Mode.RECURRING)
            sizes.add(len(out))
            assert all(int(c.link.rsplit("/", 1)[1]) < 50 for c in out)
        assert sizes == {3, 4}

    def test_window_is_newest_even_when_feed_is_unordered(self, events) -> None:
        entries = make_entries("alpha", 120)
        random.Random(1).shuffle(entries)
        feeds = {"https://alpha.com/rss": entries}
        out = self._sampler(feeds, events).sample(list(feeds), Mode.RECURRING)
        assert all(int(c.link.rsplit("/", 1)[1]) < 50 for c in out)

    def test_small_feed_returns_all_items(self, events) -> None:
        feeds = {"https://alpha.com/rss": make_entries("alpha", 4)}
        out = self._sampler(feeds, events).sample(list(feeds), Mode.INITIAL)
        assert len(out) == 4

    def test_same_link_from_two_feeds_appears_once(self, events) -> None:
        shared = make_entries("shared", 5)
        feeds = {"https://one.com/rss": shared, "https://two.com/rss": list(shared)}
        out = self._sampler(feeds, events).sample(list(feeds), Mode.INITIAL)
        links = [c.link for c in out]
        assert len(links) == 5
        assert len(set(links)) == 5
        assert {c.source for c in out} == {"One"}

    def test_sorted_newest_first_with_undated_last(self, events) -> None:
        entries = make_entries("alpha", 3) + [{"title": "undated", "link": "https://alpha.com/u"}]
        feeds = {"https://alpha.com/rss": entries}
        out = self._sampler(feeds, events).sample(list(feeds), Mode.INITIAL)
        assert [c.link for c in out] == [
            "https://alpha.com/story/0",
            "https://alpha.com/story/1",
            "https://alpha.com/story/2",
            "https://alpha.com/u",
        ]
        assert out[-1].published_at is None

    def test_failed_feed_is_isolated_and_reported(self, events) -> None:
        def fetch(url):
            if "bad" in url:
                raise FeedFetchError("boom")
            return make_entries("good", 20)

        sampler = FeedSampler(source_labels={}, rng=random.Random(3), fetch=fetch, events=events)
        out = sampler.sample(["https://bad.com/rss", "https://good.com/rss"], Mode.INITIAL)
        assert len(out) == 10
        assert events.named("feed_failed")[0]["url"] == "https://bad.com/rss"

    def test_item_with_out_of_range_date_keeps_feed(self, events) -> None:
        entries = make_entries("alpha", 20) + [
            {"title": "ancient", "link": "https://alpha.com/old", "published": "0001-01-01T00:00:00+05:00"}
        ]
        feeds = {"https://alpha.com/rss": entries}
        out = self._sampler(feeds, events).sample(list(feeds), Mode.INITIAL)
        assert len(out) == 10
        assert events.named("feed_failed") == []

    def test_unexpected_error_never_escapes(self, events) -> None:
        def fetch(url):
            raise KeyError("weird")

        sampler = FeedSampler(source_labels={}, fetch=fetch, events=events)
        assert sampler.sample(["https://a.com/rss"], Mode.RECURRING) == []
        assert len(events.named("feed_failed")) == 1

    def test_uses_configured_source_label(self, events) -> None:
        feeds = {"https://alpha.com/rss": make_entries("alpha", 3)}
        sampler = FeedSampler(
            source_labels={"https://alpha.com/rss": "Alpha Daily"},
            fetch=lambda url: feeds[url],
            events=events,
        )
        out = sampler.sample(list(feeds), Mode.INITIAL)
        assert {c.source for c in out} == {"Alpha Daily"}
