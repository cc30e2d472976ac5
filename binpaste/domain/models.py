from __future__ import annotations

import enum
from datetime import datetime, timedelta

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Index,
    String,
    Text,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from binpaste.db import Base


PASTE_ID_LENGTH = 40
TITLE_MAX_LENGTH = 255


class PasteExposure(str, enum.Enum):
    PUBLIC = "PUBLIC"
    UNLISTED = "UNLISTED"
    ONCE = "ONCE"


class ExpirySelector(str, enum.Enum):
    """Retention periods offered at creation time."""

    ONE_HOUR = "ONE_HOUR"
    ONE_DAY = "ONE_DAY"
    ONE_WEEK = "ONE_WEEK"
    ONE_MONTH = "ONE_MONTH"
    THREE_MONTHS = "THREE_MONTHS"
    ONE_YEAR = "ONE_YEAR"
    NEVER = "NEVER"

    def expiry_from(self, date_created: datetime) -> datetime | None:
        """Return the expiry instant relative to ``date_created``, ``None`` for NEVER."""
        period = _EXPIRY_PERIODS[self]
        if period is None:
            return None
        return date_created + period


_EXPIRY_PERIODS: dict[ExpirySelector, timedelta | None] = {
    ExpirySelector.ONE_HOUR: timedelta(hours=1),
    ExpirySelector.ONE_DAY: timedelta(days=1),
    ExpirySelector.ONE_WEEK: timedelta(weeks=1),
    ExpirySelector.ONE_MONTH: timedelta(days=30),
    ExpirySelector.THREE_MONTHS: timedelta(days=90),
    ExpirySelector.ONE_YEAR: timedelta(days=365),
    ExpirySelector.NEVER: None,
}


class Paste(Base):
    """Paste entity persisted via SQLAlchemy."""

    __tablename__ = "pastes"
    __table_args__ = (
        Index("ix_pastes_exposure_date_created", "exposure", "date_created"),
        Index("ix_pastes_date_of_expiry", "date_of_expiry"),
    )

    id: Mapped[str] = mapped_column(String(PASTE_ID_LENGTH), primary_key=True)
    title: Mapped[str | None] = mapped_column(String(TITLE_MAX_LENGTH), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    exposure: Mapped[PasteExposure] = mapped_column(
        Enum(PasteExposure, name="paste_exposure_enum"),
        nullable=False,
        default=PasteExposure.PUBLIC,
    )
    is_encrypted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    date_of_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    remote_address: Mapped[str] = mapped_column(String(255), nullable=False)
    # Only ever flipped by PasteRepository.try_consume.
    consumed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    @validates("id", "title", "content", "exposure", "is_encrypted", "date_created", "remote_address")
    def _validate_immutable(self, key: str, value):
        """
        Enforce that creation-time attributes are immutable.

        The value can be set on new instances, but any subsequent attempt to
        change it will raise an error.
        """

        current = getattr(self, key, None)
        if current is not None and current != value:
            raise ValueError(f"Paste {key} is immutable and cannot be modified.")
        return value

    @property
    def size_in_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    @property
    def is_permanent(self) -> bool:
        return self.date_of_expiry is None
