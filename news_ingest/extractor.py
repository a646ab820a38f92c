"""Page fetch + main text and image extraction."""

from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from .events import EventSink, LoggingEventSink
from .models import ExtractedContent

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept-Language": "en-US,en;q=0.9",
}
FETCH_TIMEOUT_SEC = 10
MAX_REDIRECTS = 5

MIN_SELECTOR_TEXT = 200
MIN_PARAGRAPH_TEXT = 50

ARTICLE_SELECTORS = (
    ".article__content",
    ".article-body",
    ".Normal",
    "div#content",
    "article",
    ".story-content",
    ".post-content",
    ".entry-content",
    "#storyBody",
)

BOILERPLATE_PATTERNS = (
    re.compile(r"share this article", re.IGNORECASE),
    re.compile(r"advertisement", re.IGNORECASE),
    re.compile(r"©\s?\d{4}", re.IGNORECASE),
)
_WHITESPACE = re.compile(r"\s+")


def _selector_text(soup: BeautifulSoup) -> str:
    for selector in ARTICLE_SELECTORS:
        nodes = soup.select(selector)
        if not nodes:
            continue
        text = " ".join(n.get_text(" ") for n in nodes).strip()
        if len(text) > MIN_SELECTOR_TEXT:
            return text
    return ""


def _paragraph_text(soup: BeautifulSoup) -> str:
    paragraphs: List[str] = []
    for p in soup.find_all("p"):
        t = p.get_text(" ").strip()
        if len(t) > MIN_PARAGRAPH_TEXT:
            paragraphs.append(t)
    return " ".join(paragraphs)


def clean_text(text: str) -> str:
    for pattern in BOILERPLATE_PATTERNS:
        text = pattern.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_text(soup: BeautifulSoup) -> str:
    """
    Main body text: known article containers first, then long <p> blocks.
    """
    text = _selector_text(soup) or _paragraph_text(soup)
    return clean_text(text)


def _absolute(src: str, base_url: str) -> str:
    resolved = urljoin(base_url, src.strip())
    if resolved.lower().startswith(("http://", "https://")):
        return resolved
    return ""


def extract_image(soup: BeautifulSoup, page_url: str) -> str:
    """Preference: og:image -> twitter:image -> first <img>. Returns an absolute URL or ""."""
    src: Optional[str] = None
    for attrs in ({"property": "og:image"}, {"name": "twitter:image"}):
        tag = soup.find("meta", attrs=attrs)
        if tag and tag.get("content", "").strip():
            src = tag["content"]
            break
    if not src:
        img = soup.find("img", src=True)
        if img and img["src"].strip():
            src = img["src"]
    if not src:
        return ""

    base = soup.find("base", href=True)
    base_url = urljoin(page_url, base["href"]) if base else page_url
    return _absolute(src, base_url)


class ContentExtractor:
    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = FETCH_TIMEOUT_SEC,
        events: Optional[EventSink] = None,
    ) -> None:
        if session is None:
            session = requests.Session()
            session.max_redirects = MAX_REDIRECTS
        self._session = session
        self._timeout = timeout
        self._events = events or LoggingEventSink(logger)

    def fetch(self, url: str) -> Optional[requests.Response]:
        try:
            resp = self._session.get(url, headers=HEADERS, timeout=self._timeout, allow_redirects=True)
        except requests.RequestException as e:
            self._events.emit("extract_failed", url=url, error=f"{type(e).__name__}: {e}")
            return None
        if not 200 <= resp.status_code < 400:
            self._events.emit("extract_failed", url=url, error=f"http_{resp.status_code}")
            return None
        return resp

    def extract(self, url: str) -> ExtractedContent:
        """Fetch a page and extract its body text and representative image. Never raises."""
        resp = self.fetch(url)
        if resp is None:
            return ExtractedContent.empty()
        try:
            soup = BeautifulSoup(resp.text, "html.parser")
            content = extract_text(soup)
            image = extract_image(soup, resp.url or url)
        except Exception as e:
            self._events.emit("extract_failed", url=url, error=f"parse_error:{type(e).__name__}: {e}")
            return ExtractedContent.empty()
        return ExtractedContent(content=content, image=image)
