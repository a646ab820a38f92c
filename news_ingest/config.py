from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.1-8b-instant"
DEFAULT_LLM_BASE_URL = "https://api.groq.com/openai/v1"

DEFAULT_SOURCE_LABELS: Dict[str, str] = {
    "https://feeds.feedburner.com/ndtvnews-top-stories": "NDTV",
    "https://www.thehindu.com/news/national/feeder/default.rss": "The Hindu",
    "https://news.abplive.com/home/feed": "ABP News",
    "https://www.indiatoday.in/rss/home": "India Today",
    "https://zeenews.india.com/rss/india-national-news.xml": "Zee News",
    "https://www.news18.com/rss/india.xml": "News18",
}


def _get_list(env: Mapping[str, str], name: str) -> List[str]:
    raw = env.get(name) or ""
    return [s.strip() for s in raw.split(",") if s.strip()]


def _get_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid integer for %s: %r", name, raw)
        return default


def _get_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid number for %s: %r", name, raw)
        return default


def _get_labels(env: Mapping[str, str]) -> Dict[str, str]:
    raw = (env.get("FEED_SOURCE_LABELS") or "").strip()
    if not raw:
        return dict(DEFAULT_SOURCE_LABELS)
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("FEED_SOURCE_LABELS is not valid JSON; using built-in labels")
        return dict(DEFAULT_SOURCE_LABELS)
    if not isinstance(parsed, dict):
        logger.warning("FEED_SOURCE_LABELS must be a JSON object; using built-in labels")
        return dict(DEFAULT_SOURCE_LABELS)
    return {str(k).strip(): str(v).strip() for k, v in parsed.items() if str(v).strip()}


@dataclass(frozen=True)
class Settings:
    feed_urls: Tuple[str, ...] = ()
    source_labels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SOURCE_LABELS))
    models: Tuple[str, ...] = (DEFAULT_MODEL,)
    api_key: Optional[str] = None
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    llm_timeout_sec: float = 30.0
    max_input_chars: int = 8000
    concurrency: int = 5
    run_timeout_sec: Optional[float] = None
    initial_threshold: int = 10
    article_ttl_sec: int = 86400
    pg_dsn: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Blank or invalid values fall back to defaults. The model list is never
        empty; without MODEL_LIST the default model is used.
        """
        env = os.environ if env is None else env
        models = tuple(_get_list(env, "MODEL_LIST")) or (DEFAULT_MODEL,)
        return cls(
            feed_urls=tuple(_get_list(env, "RSS_URL_TOP_STORIES")),
            source_labels=_get_labels(env),
            models=models,
            api_key=env.get("GROQ_API_KEY") or env.get("OPENAI_API_KEY") or None,
            llm_base_url=(env.get("LLM_BASE_URL") or "").strip() or DEFAULT_LLM_BASE_URL,
            llm_timeout_sec=_get_float(env, "LLM_TIMEOUT_SEC", 30.0),
            max_input_chars=_get_int(env, "SUMMARY_MAX_INPUT_CHARS", 8000),
            concurrency=max(1, _get_int(env, "INGEST_CONCURRENCY", 5)),
            run_timeout_sec=_get_float(env, "INGEST_RUN_TIMEOUT_SEC", None),
            initial_threshold=_get_int(env, "INITIAL_THRESHOLD", 10),
            article_ttl_sec=_get_int(env, "ARTICLE_TTL_SEC", 86400),
            pg_dsn=(env.get("PG_DSN") or "").strip() or None,
            log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        )
