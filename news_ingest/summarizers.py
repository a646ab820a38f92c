from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Optional, Protocol, Sequence

import openai

from .config import DEFAULT_LLM_BASE_URL, DEFAULT_MODEL, Settings
from .events import EventSink, LoggingEventSink

logger = logging.getLogger(__name__)

MIN_INPUT_CHARS = 40
RETRY_BACKOFF_SEC = 0.4

SYSTEM_PROMPT = "Write a tight, neutral, single-paragraph news summary. No lead-ins."
USER_PROMPT = (
    "Summarize the news below in under 100 words. "
    "Return only the summary, no preface, no bullets, no title.\n\n{text}"
)

_LEAD_INS = (
    re.compile(r"^\s*(here['’]?s|this is)\s+(the\s+)?summary\s*[:\-]\s*", re.IGNORECASE),
    re.compile(r"^\s*summary\s*[:\-]\s*", re.IGNORECASE),
)
_RATE_LIMIT_WORDS = ("rate limit", "quota", "tpm")
_TRANSIENT_WORDS = ("timeout", "timed out", "temporar", "overload")


class CompletionClient(Protocol):
    def complete(self, *, model: str, system: str, user: str) -> str:  # pragma: no cover - interface
        ...


class OpenAICompletionClient:
    """Chat completions against any OpenAI-compatible endpoint (Groq by default)."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        base_url: str = DEFAULT_LLM_BASE_URL,
        timeout_sec: float = 30.0,
        temperature: float = 0.2,
    ) -> None:
        if not api_key:
            raise RuntimeError("GROQ_API_KEY (or OPENAI_API_KEY) not set.")
        # Rotation is the retry policy; the client itself must not retry.
        self._client = openai.OpenAI(api_key=api_key, base_url=base_url, timeout=timeout_sec, max_retries=0)
        self._temperature = temperature

    def complete(self, *, model: str, system: str, user: str) -> str:
        resp = self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=self._temperature,
        )
        content = resp.choices[0].message.content if resp and resp.choices else None
        return content or ""


class ModelRotation:
    """Round-robin cursor over the configured models, owned by a single summarize call."""

    def __init__(self, models: Sequence[str]) -> None:
        self.models = tuple(m for m in models if m) or (DEFAULT_MODEL,)
        self._idx = 0

    @property
    def current(self) -> str:
        return self.models[self._idx]

    def advance(self) -> str:
        self._idx = (self._idx + 1) % len(self.models)
        return self.current

    @property
    def budget(self) -> int:
        return 2 * len(self.models)


def clean_summary(text: str) -> str:
    """Strip "Summary:" / "Here's the summary:" style lead-ins."""
    text = text or ""
    for pattern in _LEAD_INS:
        text = pattern.sub("", text, count=1)
    return text.strip()


def _status_of(err: BaseException) -> Optional[int]:
    status = getattr(err, "status_code", None) or getattr(err, "status", None)
    if status is None:
        response = getattr(err, "response", None)
        status = getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def is_rate_limit(err: BaseException) -> bool:
    msg = str(err).lower()
    return _status_of(err) == 429 or any(w in msg for w in _RATE_LIMIT_WORDS)


def is_retryable(err: BaseException) -> bool:
    """5xx, timeouts, connection drops and "temporarily unavailable"/"overloaded" wording."""
    if is_rate_limit(err):
        return True
    if isinstance(err, openai.APIConnectionError):  # includes APITimeoutError
        return True
    if isinstance(err, TimeoutError):
        return True
    status = _status_of(err)
    if status is not None and 500 <= status < 600:
        return True
    msg = str(err).lower()
    return any(w in msg for w in _TRANSIENT_WORDS)


def _truncate(s: str, limit: int) -> str:
    if limit <= 0:
        return s
    if len(s) <= limit:
        return s
    return s[:limit]


class Summarizer:
    def __init__(
        self,
        client: CompletionClient,
        *,
        models: Sequence[str] = (DEFAULT_MODEL,),
        max_input_chars: int = 8000,
        sleep: Callable[[float], Any] = time.sleep,
        events: Optional[EventSink] = None,
    ) -> None:
        self._client = client
        self.models = tuple(m for m in models if m) or (DEFAULT_MODEL,)
        self._max_input_chars = max_input_chars
        self._sleep = sleep
        self._events = events or LoggingEventSink(logger)

    @classmethod
    def from_settings(cls, settings: Settings, *, events: Optional[EventSink] = None) -> "Summarizer":
        client = OpenAICompletionClient(
            api_key=settings.api_key,
            base_url=settings.llm_base_url,
            timeout_sec=settings.llm_timeout_sec,
        )
        return cls(client, models=settings.models, max_input_chars=settings.max_input_chars, events=events)

    def summarize(self, content: str, rotation: Optional[ModelRotation] = None) -> str:
        """
        Summarize `content` in about 100 words, rotating models on transient failure.

        Returns "" when the input is too short or no attempt produced a summary.
        Never raises.
        """
        if not content or len(content) < MIN_INPUT_CHARS:
            return ""
        rotation = rotation or ModelRotation(self.models)
        prompt = USER_PROMPT.format(text=_truncate(content, self._max_input_chars))
        last_err: Optional[BaseException] = None

        for attempt in range(rotation.budget):
            model = rotation.current
            try:
                out = clean_summary(self._client.complete(model=model, system=SYSTEM_PROMPT, user=prompt))
            except Exception as err:
                last_err = err
                if is_rate_limit(err):
                    self._events.emit("summarize_retry", model=model, attempt=attempt + 1, kind="rate_limit")
                    rotation.advance()
                    continue
                if is_retryable(err):
                    self._events.emit("summarize_retry", model=model, attempt=attempt + 1, kind="transient")
                    self._sleep(RETRY_BACKOFF_SEC)
                    rotation.advance()
                    continue
                break
            if out:
                return out
            self._events.emit("summarize_retry", model=model, attempt=attempt + 1, kind="empty")
            rotation.advance()

        self._events.emit("summarize_failed", error=str(last_err) if last_err else "no summary produced")
        return ""
