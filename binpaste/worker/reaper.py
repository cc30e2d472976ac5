from __future__ import annotations

import logging
import threading
import time
from typing import NoReturn

from flask import Flask
from sqlalchemy.exc import OperationalError, ProgrammingError

from binpaste.observability import get_correlation_id
from binpaste.services.paste_service import PasteService


logger = logging.getLogger(__name__)

_worker_started = False
_worker_lock = threading.Lock()


def reap_once(paste_service: PasteService) -> int:
    """
    Run a single sweep, never raising.

    Returns the number of pastes removed (0 on failure). Visibility does not
    depend on the sweep succeeding, so failures are only logged.
    """

    try:
        removed = paste_service.reap()
    except (OperationalError, ProgrammingError):
        # Schema not migrated yet or database unreachable.
        logger.warning(
            "Paste reaper: database not ready; skipping cycle",
            extra={
                "event": "reaper_schema_error",
                "correlation_id": get_correlation_id() or "paste-reaper",
            },
        )
        return 0
    except Exception:
        logger.exception(
            "Error in paste reaper sweep",
            extra={
                "event": "reaper_error",
                "correlation_id": get_correlation_id() or "paste-reaper",
            },
        )
        return 0

    if removed:
        logger.info(
            "Paste reaper: removed expired or consumed pastes",
            extra={
                "event": "reaper_sweep",
                "removed": removed,
                "correlation_id": get_correlation_id() or "paste-reaper",
            },
        )
    return removed


def _reaper_loop(app: Flask, paste_service: PasteService, interval: float) -> NoReturn:
    """Background loop that periodically purges dead pastes."""

    with app.app_context():
        while True:
            reap_once(paste_service)
            time.sleep(interval)


def start_reaper(app: Flask, paste_service: PasteService) -> None:
    """
    Start the reaper in a background daemon thread.

    This function is idempotent and will only start a single worker thread.
    """

    global _worker_started
    with _worker_lock:
        if _worker_started:
            return

        thread = threading.Thread(
            target=_reaper_loop,
            args=(app, paste_service, app.config.get("REAPER_INTERVAL_SECONDS", 300.0)),
            name="paste-reaper",
            daemon=True,
        )
        thread.start()
        _worker_started = True
