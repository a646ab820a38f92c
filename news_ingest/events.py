"""
Event emission for pipeline components.

Components report what happened through an `EventSink` rather than logging
directly, so the same component can run under a logger in production and under
`MemoryEventSink` in tests.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple


class EventSink(Protocol):
    def emit(self, event: str, **fields: Any) -> None:  # pragma: no cover - interface
        ...


_LEVELS = {
    "feed_failed": logging.ERROR,
    "extract_failed": logging.ERROR,
    "summarize_failed": logging.ERROR,
    "candidate_failed": logging.ERROR,
    "summarize_retry": logging.WARNING,
    "no_candidates": logging.WARNING,
    "run_cancelled": logging.WARNING,
    "saved": logging.INFO,
    "sampled": logging.INFO,
    "run_finished": logging.INFO,
}


def _render(event: str, fields: Dict[str, Any]) -> str:
    if event == "run_finished" and "summary" in fields:
        return str(fields["summary"])
    parts = [event]
    for k, v in fields.items():
        parts.append(f"{k}={v!r}" if isinstance(v, str) else f"{k}={v}")
    return " ".join(parts)


class LoggingEventSink:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("news_ingest")

    def emit(self, event: str, **fields: Any) -> None:
        level = _LEVELS.get(event, logging.DEBUG)
        if self._logger.isEnabledFor(level):
            self._logger.log(level, _render(event, fields))


class NullEventSink:
    def emit(self, event: str, **fields: Any) -> None:
        return None


class MemoryEventSink:
    """Collects events in memory. Safe to share between worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event: str, **fields: Any) -> None:
        with self._lock:
            self.events.append((event, dict(fields)))

    def named(self, event: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [f for name, f in self.events if name == event]
