"""
Cache-Control header values for paste responses.

Public pastes may be cached for at most ``MAX_AGE_SECONDS`` and never past
their expiry. Unlisted and one-time pastes are never cached. Negative and
listing responses carry no directive at all; callers simply do not set the
header for them.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from .models import PasteExposure
from .state_machine import as_utc


MAX_AGE_SECONDS = 60 * 60
SEARCH_MAX_AGE_SECONDS = 60

NO_STORE = "no-store, no-cache"
NO_CACHE = "no-cache"
SEARCH_CACHE_CONTROL = f"max-age={SEARCH_MAX_AGE_SECONDS}"


def _max_age(seconds: int) -> str:
    return f"max-age={seconds}"


def cache_control_for(
    exposure: PasteExposure,
    date_of_expiry: Optional[datetime],
    now: datetime,
) -> str:
    """Return the ``Cache-Control`` value for a successfully viewed paste."""
    if exposure != PasteExposure.PUBLIC:
        return NO_STORE

    if date_of_expiry is None:
        return _max_age(MAX_AGE_SECONDS)

    remaining = (as_utc(date_of_expiry) - now).total_seconds()
    if remaining >= MAX_AGE_SECONDS:
        return _max_age(MAX_AGE_SECONDS)

    return f"{_max_age(max(0, math.floor(remaining)))}, must-revalidate"
