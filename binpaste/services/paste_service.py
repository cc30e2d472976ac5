from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from binpaste.domain.models import (
    PASTE_ID_LENGTH,
    TITLE_MAX_LENGTH,
    ExpirySelector,
    Paste,
    PasteExposure,
)
from binpaste.domain.search import MIN_TERM_LENGTH, SearchMatcher
from binpaste.domain.state_machine import as_utc, grant_view, utcnow
from binpaste.observability import get_correlation_id
from binpaste.repositories.paste_repository import PasteRepository
from binpaste.services.helpers import generate_paste_id


logger = logging.getLogger(__name__)


MIN_CONTENT_BYTES = 5
MAX_CONTENT_BYTES = 4096


def _paste_to_summary(paste: Paste) -> dict[str, Any]:
    """Listing DTO: everything but the content."""
    return {
        "id": paste.id,
        "title": paste.title,
        "size_in_bytes": paste.size_in_bytes,
        "is_encrypted": paste.is_encrypted,
        "date_created": as_utc(paste.date_created),
        "date_of_expiry": as_utc(paste.date_of_expiry) if paste.date_of_expiry else None,
    }


def _paste_to_dto(paste: Paste, caller_address: Optional[str]) -> dict[str, Any]:
    """Convert a Paste ORM entity to a plain dict DTO. Exposure as string value."""
    return {
        **_paste_to_summary(paste),
        "content": paste.content,
        "exposure": paste.exposure.value,
        "is_public": paste.exposure == PasteExposure.PUBLIC,
        "is_permanent": paste.is_permanent,
        "is_erasable": caller_address is not None and caller_address == paste.remote_address,
    }


class PasteError(Exception):
    """Base class for paste-related errors."""


class InvalidPasteParameters(PasteError):
    """Raised when creating a paste with invalid parameters."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


_PASTE_ID_PATTERN = re.compile(rf"[a-z0-9]{{{PASTE_ID_LENGTH}}}")


def _is_well_formed_id(paste_id: str) -> bool:
    return _PASTE_ID_PATTERN.fullmatch(paste_id) is not None


@dataclass
class PasteService:
    """
    Application service coordinating paste-related use cases.

    Owns session lifecycle: creates a session per use case, commits on success,
    rolls back on exception, and closes the session in a finally block.
    Returns plain dict DTOs; no ORM entities escape this layer.

    "Not found" is reported uniformly as ``None``: missing, expired and
    already consumed pastes are indistinguishable to the caller.
    """

    session_factory: Callable[[], Session]
    clock: Callable[[], datetime] = utcnow
    matcher: SearchMatcher = field(default_factory=SearchMatcher)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------
    def create_paste(
        self,
        *,
        content: str,
        remote_address: str,
        title: Optional[str] = None,
        exposure: PasteExposure = PasteExposure.PUBLIC,
        is_encrypted: bool = False,
        expiry: ExpirySelector = ExpirySelector.ONE_DAY,
    ) -> dict[str, Any]:
        """
        Create a new paste enforcing business rules:

        - ``title`` is trimmed; blank means no title; at most 255 characters
        - ``content`` is trimmed and must then be 5 to 4096 bytes (UTF-8)
        - ``date_of_expiry`` derives from ``expiry`` (``NEVER`` -> permanent)
        """
        if title is not None:
            title = title.strip() or None
        if title is not None and len(title) > TITLE_MAX_LENGTH:
            self._log_invalid("title")
            raise InvalidPasteParameters(
                f"title must be at most {TITLE_MAX_LENGTH} characters.", field="title"
            )

        content = (content or "").strip()
        size = len(content.encode("utf-8"))
        if not MIN_CONTENT_BYTES <= size <= MAX_CONTENT_BYTES:
            self._log_invalid("content")
            raise InvalidPasteParameters(
                f"content must be between {MIN_CONTENT_BYTES} and {MAX_CONTENT_BYTES} "
                "bytes when trimmed and UTF-8 encoded.",
                field="content",
            )

        date_created = self.clock()
        paste = Paste(
            id=generate_paste_id(),
            title=title,
            content=content,
            exposure=exposure,
            is_encrypted=is_encrypted,
            date_created=date_created,
            date_of_expiry=expiry.expiry_from(date_created),
            remote_address=remote_address,
            consumed=False,
        )

        session = self.session_factory()
        try:
            PasteRepository(session=session).add(paste)
            dto = _paste_to_dto(paste, remote_address)
            session.commit()
            logger.info(
                "Paste created",
                extra={
                    "event": "paste_created",
                    "paste_id": dto["id"],
                    "exposure": dto["exposure"],
                    "correlation_id": get_correlation_id(),
                },
            )
            return dto
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------
    def delete_paste(self, paste_id: str, caller_address: str) -> None:
        """
        Delete a paste if ``caller_address`` created it.

        Missing pastes and foreign pastes are silent no-ops so that the
        outcome cannot be used to probe for existence or ownership.
        """
        session = self.session_factory()
        try:
            deleted = PasteRepository(session=session).delete_owned(paste_id, caller_address)
            session.commit()
            if deleted:
                logger.info(
                    "Paste deleted",
                    extra={
                        "event": "paste_deleted",
                        "paste_id": paste_id,
                        "correlation_id": get_correlation_id(),
                    },
                )
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Retrieval / viewing
    # -------------------------------------------------------------------------
    def view_paste(
        self,
        paste_id: str,
        caller_address: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Retrieve a paste for viewing, enforcing expiry and exposure rules.

        Rules:
        - missing or expired -> ``None``
        - ONCE -> granted only to the caller winning the atomic consumption;
          everyone else, now and later, gets ``None``
        - PUBLIC / UNLISTED -> returned while not expired
        """
        if not _is_well_formed_id(paste_id):
            return None

        session = self.session_factory()
        try:
            paste_repo = PasteRepository(session=session)
            paste = paste_repo.get_paste_by_id(paste_id)
            if paste is None:
                return None

            now = self.clock()
            granted = grant_view(paste, now, lambda: paste_repo.try_consume(paste_id))
            if not granted:
                session.commit()
                return None

            dto = _paste_to_dto(paste, caller_address)
            session.commit()

            logger.info(
                "Paste viewed",
                extra={
                    "event": "paste_viewed",
                    "paste_id": paste_id,
                    "exposure": dto["exposure"],
                    "correlation_id": get_correlation_id(),
                },
            )
            return dto
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def view_all(self) -> list[dict[str, Any]]:
        """All public, unexpired pastes as summaries, newest first."""
        session = self.session_factory()
        try:
            pastes = PasteRepository(session=session).list_listable(self.clock())
            return [_paste_to_summary(paste) for paste in pastes]
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------
    def search(self, term: str) -> list[dict[str, Any]]:
        """
        Full-text search over public, unexpired pastes.

        Terms shorter than three characters yield no results rather than an
        error.
        """
        term = (term or "").strip()
        if len(term) < MIN_TERM_LENGTH:
            return []

        session = self.session_factory()
        try:
            now = self.clock()
            candidates = PasteRepository(session=session).search_candidates(term, now)
            hits = self.matcher.match(term, candidates, now)
            return [
                {**_paste_to_summary(hit.paste), "highlight": hit.highlight}
                for hit in hits
            ]
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Housekeeping
    # -------------------------------------------------------------------------
    def reap(self, now: Optional[datetime] = None) -> int:
        """
        Physically remove expired and consumed pastes.

        Visibility never depends on this running; expiry is always checked
        lazily on read.
        """
        now = now or self.clock()
        session = self.session_factory()
        try:
            paste_repo = PasteRepository(session=session)
            removed = paste_repo.delete_expired(now) + paste_repo.delete_consumed()
            session.commit()
            return removed
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _log_invalid(self, field_name: str) -> None:
        logger.warning(
            "Invalid paste parameters",
            extra={
                "event": "paste_create_invalid_parameters",
                "error_type": field_name,
                "correlation_id": get_correlation_id(),
            },
        )
