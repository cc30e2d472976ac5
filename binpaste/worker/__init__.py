"""
Background housekeeping.

The reaper purges expired and consumed pastes to bound storage growth. It is
an optimization only: expiry and consumption are enforced on every read.
"""
from __future__ import annotations

from binpaste.worker.reaper import reap_once, start_reaper

__all__ = ["reap_once", "start_reaper"]
