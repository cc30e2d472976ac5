from __future__ import annotations

import enum
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Iterable

from .models import Paste, PasteExposure


class InvalidPasteStateTransition(Exception):
    """Raised when an invalid state transition is requested for a Paste."""


class PasteState(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"
    EXPIRED = "EXPIRED"
    DELETED = "DELETED"


# Explicitly enumerated allowed transitions between distinct states.
_ALLOWED_TRANSITIONS: set[tuple[PasteState, PasteState]] = {
    (PasteState.ACTIVE, PasteState.CONSUMED),
    (PasteState.ACTIVE, PasteState.EXPIRED),
    (PasteState.CONSUMED, PasteState.EXPIRED),
    (PasteState.ACTIVE, PasteState.DELETED),
    (PasteState.CONSUMED, PasteState.DELETED),
    (PasteState.EXPIRED, PasteState.DELETED),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes coming back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _coerce_state(value: PasteState | str) -> PasteState:
    """Normalize incoming state values to ``PasteState``."""
    if isinstance(value, PasteState):
        return value
    try:
        return PasteState(value)
    except ValueError as exc:
        valid: Iterable[str] = (s.value for s in PasteState)
        raise InvalidPasteStateTransition(
            f"Unknown paste state {value!r}. Valid states: {', '.join(valid)}"
        ) from exc


def validate_transition(
    current_state: PasteState | str,
    next_state: PasteState | str,
) -> None:
    """
    Validate a transition between two Paste states.

    - Allowed transitions:
      ACTIVE → CONSUMED, ACTIVE → EXPIRED, CONSUMED → EXPIRED,
      and any live state → DELETED.
    - Forbidden transitions raise ``InvalidPasteStateTransition``.
    - A \"no-op\" transition (``current_state == next_state``) is always allowed.
    """

    current = _coerce_state(current_state)
    target = _coerce_state(next_state)

    # No-op: staying in the same state is permitted.
    if current is target:
        return

    if (current, target) not in _ALLOWED_TRANSITIONS:
        raise InvalidPasteStateTransition(
            f"Cannot transition Paste from {current.value} to {target.value}."
        )


def is_expired(paste: Paste, now: datetime) -> bool:
    if paste.date_of_expiry is None:
        return False
    return as_utc(paste.date_of_expiry) <= now


def classify(paste: Paste | None, now: datetime) -> PasteState:
    """
    Return the current state of ``paste``.

    Expiry is derived from the wall clock on every call and wins over
    consumption; a missing record is DELETED.
    """
    if paste is None:
        return PasteState.DELETED
    if is_expired(paste, now):
        return PasteState.EXPIRED
    if paste.exposure == PasteExposure.ONCE and paste.consumed:
        return PasteState.CONSUMED
    return PasteState.ACTIVE


def is_listable(paste: Paste, now: datetime) -> bool:
    """Eligibility for listing and search: public and active."""
    return paste.exposure == PasteExposure.PUBLIC and classify(paste, now) is PasteState.ACTIVE


# A view rule receives a zero-argument callable performing the atomic
# consumption at the store and decides whether the view is granted.
ViewRule = Callable[[Callable[[], bool]], bool]


def _always_granted(_consume: Callable[[], bool]) -> bool:
    return True


def _granted_by_consumption(consume: Callable[[], bool]) -> bool:
    return consume()


_VIEW_RULES: dict[PasteExposure, ViewRule] = {
    PasteExposure.PUBLIC: _always_granted,
    PasteExposure.UNLISTED: _always_granted,
    PasteExposure.ONCE: _granted_by_consumption,
}

_missing = set(PasteExposure) - set(_VIEW_RULES)
if _missing:
    raise RuntimeError(f"No view rule for exposure(s): {sorted(m.value for m in _missing)}")


def grant_view(paste: Paste, now: datetime, consume: Callable[[], bool]) -> bool:
    """
    Decide whether the caller may see ``paste``.

    Only ACTIVE pastes are considered. For ONCE pastes ``consume`` must be
    the store's atomic check-and-set; the view is granted only to the caller
    whose call flipped the flag.
    """
    if classify(paste, now) is not PasteState.ACTIVE:
        return False
    granted = _VIEW_RULES[paste.exposure](consume)
    if granted and paste.exposure == PasteExposure.ONCE:
        validate_transition(PasteState.ACTIVE, PasteState.CONSUMED)
    return granted
