from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Delete, Select, Update, and_, delete, or_, select, update
from sqlalchemy.orm import Session

from binpaste.domain.models import Paste, PasteExposure
from binpaste.domain.state_machine import PasteState
from binpaste.observability import get_correlation_id


logger = logging.getLogger(__name__)


def _active_clause(now: datetime):
    return or_(Paste.date_of_expiry.is_(None), Paste.date_of_expiry > now)


def _listable_clause(now: datetime):
    return and_(Paste.exposure == PasteExposure.PUBLIC, _active_clause(now))


class PasteRepository:
    """
    Repository for Paste aggregates.

    All database interaction for Paste should go through this class. The
    caller owns the session and is responsible for committing.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, paste: Paste) -> Paste:
        """Stage a new Paste and flush so constraint violations surface here."""

        self._session.add(paste)
        self._session.flush()
        return paste

    def get_paste_by_id(self, paste_id: str) -> Optional[Paste]:
        """Return a Paste by its id, or ``None`` if not found."""

        stmt: Select[tuple[Paste]] = select(Paste).where(Paste.id == paste_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def try_consume(self, paste_id: str) -> bool:
        """
        Atomically flip ``consumed`` on a ONCE paste.

        Check and set happen in a single conditional UPDATE, so among any
        number of concurrent callers exactly one sees a changed row. Returns
        ``True`` only for that caller.
        """

        stmt: Update = (
            update(Paste)
            .where(
                Paste.id == paste_id,
                Paste.exposure == PasteExposure.ONCE,
                Paste.consumed.is_(False),
            )
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        granted = result.rowcount == 1

        if granted:
            logger.info(
                "Paste status transition",
                extra={
                    "event": "paste_status_transition",
                    "paste_id": paste_id,
                    "state_from": PasteState.ACTIVE.value,
                    "state_to": PasteState.CONSUMED.value,
                    "correlation_id": get_correlation_id(),
                },
            )
        return granted

    def delete_owned(self, paste_id: str, remote_address: str) -> bool:
        """Delete the paste only if it was created from ``remote_address``."""

        stmt: Delete = (
            delete(Paste)
            .where(Paste.id == paste_id, Paste.remote_address == remote_address)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1

    def list_listable(self, now: datetime) -> list[Paste]:
        """Public, unexpired pastes, newest first."""

        stmt: Select[tuple[Paste]] = (
            select(Paste)
            .where(_listable_clause(now))
            .order_by(Paste.date_created.desc(), Paste.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def search_candidates(self, term: str, now: datetime) -> list[Paste]:
        """
        Public, unexpired pastes whose title or content contains ``term``,
        ignoring case. Ranking is left to the caller.
        """

        stmt: Select[tuple[Paste]] = select(Paste).where(
            _listable_clause(now),
            or_(
                Paste.title.icontains(term, autoescape=True),
                Paste.content.icontains(term, autoescape=True),
            ),
        )
        return list(self._session.execute(stmt).scalars().all())

    def delete_expired(self, now: datetime) -> int:
        """Physically remove pastes whose expiry has passed."""

        stmt: Delete = (
            delete(Paste)
            .where(Paste.date_of_expiry.is_not(None), Paste.date_of_expiry <= now)
            .execution_options(synchronize_session=False)
        )
        return int(self._session.execute(stmt).rowcount or 0)

    def delete_consumed(self) -> int:
        """Physically remove ONCE pastes that have already been viewed."""

        stmt: Delete = (
            delete(Paste)
            .where(Paste.exposure == PasteExposure.ONCE, Paste.consumed.is_(True))
            .execution_options(synchronize_session=False)
        )
        return int(self._session.execute(stmt).rowcount or 0)
