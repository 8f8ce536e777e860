"""Stamp identification endpoints.

Endpoints:
  POST /identify-stamp   identify every stamp in an image
  GET  /ai/model-info    active vision provider/model
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stampid.core.auth import SessionUser, get_current_user
from stampid.services.ai.common.errors import (
    MalformedProviderResponse,
    MissingCredential,
    NetworkError,
    ProviderHttpError,
    RequestTimeout,
    StampIDError,
    UnknownProvider,
    ValidationError,
)
from stampid.services.ai.common.registry import ProviderRegistry
from stampid.services.ai.identification.service import identify_stamps

logger = logging.getLogger(__name__)

router = APIRouter()


class IdentifyStampRequest(BaseModel):
    image_base64: Optional[str] = None
    image_url: Optional[str] = None


class ModelInfoResponse(BaseModel):
    provider: str
    display_name: str
    model: str
    cost: float
    description: str


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def error_response(exc: StampIDError) -> JSONResponse:
    """Map the error taxonomy onto the backend's ``{error}`` contract."""
    if isinstance(exc, ValidationError):
        return _error(400, str(exc))
    if isinstance(exc, (MissingCredential, UnknownProvider)):
        return _error(500, str(exc))
    if isinstance(exc, ProviderHttpError):
        return _error(502, str(exc), provider=exc.provider, provider_status=exc.status)
    if isinstance(exc, RequestTimeout):
        return _error(504, str(exc))
    if isinstance(exc, (MalformedProviderResponse, NetworkError)):
        return _error(502, str(exc))
    return _error(500, str(exc))


# ---------------------------------------------------------------------------
# POST /identify-stamp
# ---------------------------------------------------------------------------


@router.post("/identify-stamp")
async def identify_stamp(
    body: IdentifyStampRequest,
    user: SessionUser = Depends(get_current_user),
):
    """Identify stamps; answers ``MultiStampResult`` or ``{error}``."""
    if not body.image_base64 and not body.image_url:
        return _error(400, "image_base64 or image_url required")

    try:
        result = await identify_stamps(body.image_base64, body.image_url)
    except StampIDError as exc:
        logger.warning("identify-stamp failed for user %s: %s", user.id, exc)
        return error_response(exc)

    return result.to_wire()


# ---------------------------------------------------------------------------
# GET /ai/model-info
# ---------------------------------------------------------------------------


@router.get("/ai/model-info", response_model=ModelInfoResponse)
def model_info():
    info = ProviderRegistry.from_settings().model_info()
    return ModelInfoResponse(
        provider=info.provider,
        display_name=info.display_name,
        model=info.model,
        cost=info.cost,
        description=info.description,
    )
