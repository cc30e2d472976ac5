from __future__ import annotations

import logging
from http import HTTPStatus

from flask import Blueprint, Response, current_app, request
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from binpaste.api.schemas import (
    HealthResponse,
    PasteCreateRequest,
    PasteListResponse,
    PasteResponse,
    PasteSearchResponse,
)
from binpaste.domain.cache_control import (
    NO_CACHE,
    SEARCH_CACHE_CONTROL,
    cache_control_for,
)
from binpaste.observability import get_correlation_id
from binpaste.services.helpers import remote_fingerprint
from binpaste.services.paste_service import InvalidPasteParameters, PasteService

PASTE_SERVICE_EXTENSION = "binpaste.paste_service"

api_bp = Blueprint("api", __name__, url_prefix="/api/v1")

logger = logging.getLogger(__name__)


def _paste_service() -> PasteService:
    return current_app.extensions[PASTE_SERVICE_EXTENSION]


def _caller_address() -> str:
    return remote_fingerprint(request.headers, request.remote_addr)


def _empty(status: HTTPStatus, cache_control: str | None = None) -> Response:
    response = Response(status=status)
    if cache_control:
        response.headers["Cache-Control"] = cache_control
    return response


@api_bp.errorhandler(SQLAlchemyError)
def _store_failure(exc: SQLAlchemyError) -> tuple[dict, int]:
    logger.exception(
        "Paste store failure",
        extra={
            "event": "paste_store_error",
            "error_type": type(exc).__name__,
            "correlation_id": get_correlation_id(),
        },
    )
    return {"error": "Internal server error"}, HTTPStatus.INTERNAL_SERVER_ERROR


@api_bp.route("/health", methods=["GET"])
def health() -> tuple[dict, int]:
    """Simple health check endpoint."""

    body = HealthResponse().model_dump()
    return body, HTTPStatus.OK


@api_bp.route("/paste", methods=["GET"])
@api_bp.route("/paste/", methods=["GET"])
def list_pastes() -> tuple[dict, int]:
    """Public, unexpired pastes, newest first. Never cached."""

    pastes = _paste_service().view_all()
    body = PasteListResponse.model_validate({"pastes": pastes})
    return body.model_dump(mode="json", by_alias=True), HTTPStatus.OK


@api_bp.route("/paste/search", methods=["GET"])
def search_pastes() -> tuple[dict, int, dict]:
    term = request.args.get("term", "")
    hits = _paste_service().search(term)
    body = PasteSearchResponse.model_validate({"pastes": hits})
    return (
        body.model_dump(mode="json", by_alias=True),
        HTTPStatus.OK,
        {"Cache-Control": SEARCH_CACHE_CONTROL},
    )


@api_bp.route("/paste/<paste_id>", methods=["GET"])
def view_paste(paste_id: str):
    """
    View a single paste.

    Missing, expired and consumed pastes all answer 404 with an empty body
    and no caching directive.
    """
    paste_service = _paste_service()
    dto = paste_service.view_paste(paste_id, caller_address=_caller_address())
    if dto is None:
        return _empty(HTTPStatus.NOT_FOUND)

    body = PasteResponse.model_validate(dto)
    cache_control = cache_control_for(
        body.exposure,
        body.date_of_expiry,
        paste_service.clock(),
    )
    return (
        body.model_dump(mode="json", by_alias=True),
        HTTPStatus.OK,
        {"Cache-Control": cache_control},
    )


@api_bp.route("/paste", methods=["POST"])
@api_bp.route("/paste/", methods=["POST"])
def create_paste():
    """
    Create a new paste.

    Shape is validated by Pydantic; business rules by the service layer.
    """
    try:
        payload = PasteCreateRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return {"error": "Invalid request body", "details": exc.errors(include_url=False, include_input=False)}, HTTPStatus.BAD_REQUEST

    try:
        dto = _paste_service().create_paste(
            title=payload.title,
            content=payload.content,
            exposure=payload.exposure,
            is_encrypted=payload.is_encrypted,
            expiry=payload.expiry,
            remote_address=_caller_address(),
        )
    except InvalidPasteParameters as exc:
        return {"error": str(exc), "field": exc.field}, HTTPStatus.BAD_REQUEST

    body = PasteResponse.model_validate(dto)
    return (
        body.model_dump(mode="json", by_alias=True),
        HTTPStatus.CREATED,
        {"Cache-Control": NO_CACHE},
    )


@api_bp.route("/paste/<paste_id>", methods=["DELETE"])
def delete_paste(paste_id: str) -> Response:
    """
    Delete a paste created from the caller's address.

    Always answers 204, whether or not anything was deleted.
    """
    _paste_service().delete_paste(paste_id, caller_address=_caller_address())
    return _empty(HTTPStatus.NO_CONTENT, NO_CACHE)
