from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .models import Paste
from .state_machine import as_utc, is_listable


MIN_TERM_LENGTH = 3
HIGHLIGHT_LENGTH = 120
ELLIPSIS = "..."
TITLE_WEIGHT = 3


@dataclass(frozen=True)
class SearchHit:
    paste: Paste
    relevance: int
    highlight: Optional[str]


def build_highlight(content: str, term: str, length: int = HIGHLIGHT_LENGTH) -> str:
    """
    Return an excerpt of ``content`` of at most ``length`` characters
    (ellipsis markers excluded) centred on the first occurrence of ``term``.

    Without an occurrence the excerpt starts at the beginning of the content.
    """
    length = max(length, len(term))
    # Positions must index the original content.
    found = re.search(re.escape(term), content, re.IGNORECASE)
    if found is None:
        start = 0
    else:
        start = max(0, found.start() + len(term) // 2 - length // 2)
    end = min(len(content), start + length)
    # Shift left when the window hits the end of the content.
    start = max(0, end - length)

    excerpt = content[start:end].strip()
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(content):
        excerpt = excerpt + ELLIPSIS
    return excerpt


class SearchMatcher:
    """
    Case-insensitive matcher over title and content of eligible pastes.

    Candidates are typically pre-filtered by the store; eligibility is
    checked again here so that an expired or non-public candidate can never
    leak into the results.
    """

    def __init__(self, highlight_length: int = HIGHLIGHT_LENGTH) -> None:
        self._highlight_length = highlight_length

    def match(self, term: str, candidates: Iterable[Paste], now: datetime) -> list[SearchHit]:
        needle = term.strip()
        if len(needle) < MIN_TERM_LENGTH:
            return []
        pattern = re.compile(re.escape(needle), re.IGNORECASE)

        hits: list[SearchHit] = []
        for paste in candidates:
            if not is_listable(paste, now):
                continue

            title_hits = len(pattern.findall(paste.title or ""))
            # Encrypted content is ciphertext and never matched.
            content_hits = 0 if paste.is_encrypted else len(pattern.findall(paste.content))
            relevance = TITLE_WEIGHT * title_hits + content_hits
            if relevance == 0:
                continue

            highlight = None
            if not paste.is_encrypted:
                highlight = build_highlight(paste.content, needle, self._highlight_length)
            hits.append(SearchHit(paste=paste, relevance=relevance, highlight=highlight))

        # Stable sorts applied from the least to the most significant key.
        hits.sort(key=lambda hit: hit.paste.id)
        hits.sort(key=lambda hit: as_utc(hit.paste.date_created), reverse=True)
        hits.sort(key=lambda hit: hit.relevance, reverse=True)
        return hits
