from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from binpaste.domain.models import ExpirySelector, PasteExposure


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PasteCreateRequest(_CamelModel):
    title: Optional[str] = Field(default=None, description="Optional title")
    content: str = Field(..., description="Paste content, 5 to 4096 bytes once trimmed")
    exposure: PasteExposure = Field(default=PasteExposure.PUBLIC)
    is_encrypted: bool = Field(
        default=False,
        description="Content is client-side encrypted ciphertext",
    )
    expiry: ExpirySelector = Field(default=ExpirySelector.ONE_DAY)


class PasteSummaryResponse(_CamelModel):
    id: str
    title: Optional[str]
    size_in_bytes: int
    is_encrypted: bool
    date_created: datetime
    date_of_expiry: Optional[datetime]


class PasteResponse(PasteSummaryResponse):
    content: str
    exposure: PasteExposure
    is_public: bool
    is_permanent: bool
    is_erasable: bool


class PasteSearchHitResponse(PasteSummaryResponse):
    highlight: Optional[str]


class PasteListResponse(_CamelModel):
    pastes: list[PasteSummaryResponse]


class PasteSearchResponse(_CamelModel):
    pastes: list[PasteSearchHitResponse]


class HealthResponse(BaseModel):
    status: str = "ok"
