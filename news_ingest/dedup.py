from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from .models import Candidate


def deduplicate(items: Iterable[Candidate]) -> List[Candidate]:
    """
    Remove duplicates by link, or by title+source when the link is missing.
    Keeps the first occurrence and preserves original order.
    """
    seen: Set[Tuple[str, ...]] = set()
    out: List[Candidate] = []

    for it in items:
        key = ("link", it.link) if it.link else ("title", it.title, it.source)
        if key in seen:
            continue
        seen.add(key)
        out.append(it)
    return out
