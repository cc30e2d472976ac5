from __future__ import annotations

import secrets
from collections.abc import Mapping
from typing import Optional


def generate_paste_id() -> str:
    # 20 random bytes -> 40 lowercase hex characters
    return secrets.token_hex(20)


def remote_fingerprint(headers: Mapping[str, str], remote_addr: Optional[str]) -> str:
    """
    Best-effort network origin of the caller.

    Prefers the first hop of ``X-Forwarded-For``. Trivially spoofable; only
    used to let a creator delete their own paste.
    """
    forwarded = headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or remote_addr or "unknown"
