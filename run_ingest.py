"""Run one ingestion pass. Meant to be invoked by cron or a worker's scheduler."""

import argparse
import logging
import signal
import sys
from datetime import timedelta

from dotenv import load_dotenv

from news_ingest import IngestionPipeline, MemoryArticleStore, Mode, PostgresArticleStore, Settings

logger = logging.getLogger("run_ingest")


def build_store(settings: Settings):
    ttl = timedelta(seconds=settings.article_ttl_sec)
    if not settings.pg_dsn:
        logger.warning("PG_DSN not set; articles are kept in memory for this run only")
        return MemoryArticleStore(ttl=ttl)
    store = PostgresArticleStore(settings.pg_dsn, ttl=ttl)
    store.ensure_schema()
    return store


def choose_mode(requested: str, store, threshold: int) -> Mode:
    """'auto' runs an initial fill when the store is nearly empty, else a recurring pass."""
    if requested != "auto":
        return Mode(requested)
    try:
        count = store.count()
    except Exception as e:
        logger.warning("Could not get article count: %s", e)
        count = 0
    if count < threshold:
        logger.info("Store has %d articles (< %d), running initial fill", count, threshold)
        return Mode.INITIAL
    logger.info("Store has %d articles, skipping initial fill", count)
    return Mode.RECURRING


def main(argv=None) -> int:
    # .env is optional; real environment variables win
    load_dotenv()
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Sample feeds, summarize articles and store them")
    parser.add_argument("mode", nargs="?", default="auto", choices=["auto", "initial", "recurring"])
    parser.add_argument("--timeout", type=float, default=settings.run_timeout_sec,
                        help="Stop starting new work after this many seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s")

    if not settings.feed_urls:
        logger.error("RSS_URL_TOP_STORIES is not set. Check your .env file.")
        return 1
    if not settings.api_key:
        logger.error("GROQ_API_KEY (or OPENAI_API_KEY) is not set. Check your .env file.")
        return 1

    store = build_store(settings)
    purged = store.purge_expired()
    if purged:
        logger.info("Purged %d expired articles", purged)

    pipeline = IngestionPipeline.from_settings(settings, store)

    interrupted = []

    def _shutdown(signum, _frame):
        logger.info("%s received, finishing in-flight articles", signal.Signals(signum).name)
        interrupted.append(signum)
        pipeline.stop()
        # a second signal kills the process
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    mode = choose_mode(args.mode, store, settings.initial_threshold)
    if interrupted:
        logger.info("Interrupted before the run started")
        return 130
    pipeline.run(mode, timeout=args.timeout)
    return 130 if interrupted else 0


if __name__ == "__main__":
    sys.exit(main())
