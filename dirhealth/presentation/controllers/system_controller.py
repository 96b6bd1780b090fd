"""System endpoints exposing liveness and info."""

from typing import Dict

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Request

from dirhealth.application.dtos.system_dto import ApplicationInfoDTO
from dirhealth.application.use_cases.system_use_cases import (
    GetApplicationInfoUseCase,
)
from dirhealth.shared import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health() -> Dict[str, str]:
    """Liveness probe; does not contact any directory server."""
    return {"status": "ok"}


@router.get("/info", response_model=ApplicationInfoDTO)
@inject
async def info(
    request: Request,
    get_application_info_use_case: GetApplicationInfoUseCase = Depends(
        Provide["get_application_info_use_case"]
    ),
) -> ApplicationInfoDTO:
    """Return service metadata and the registered check categories."""
    started_at = getattr(request.app.state, "started_at", None)
    info_response = await get_application_info_use_case.execute(started_at)
    logger.debug("info.retrieved", categories=len(info_response.categories))
    return info_response
