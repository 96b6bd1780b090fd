"""
Assessments Router - Presentation Layer

This module defines the FastAPI router for assessment endpoints.
"""

from typing import List

import structlog
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, HTTPException, status

from dirhealth.application.dtos.health_dto import (
    AssessmentRequestDTO,
    CategoryDTO,
    HealthRunDTO,
)
from dirhealth.application.use_cases.category_use_cases import ListCategoriesUseCase
from dirhealth.application.use_cases.health_assessment_use_case import (
    HealthAssessmentUseCase,
)
from dirhealth.domain.entities.errors import (
    DiscoveryError,
    ThresholdConfigurationError,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/assessments", tags=["Assessments"])


@router.post("", response_model=HealthRunDTO)
@inject
async def run_assessment(
    payload: AssessmentRequestDTO,
    health_assessment_use_case: HealthAssessmentUseCase = Depends(
        Provide["health_assessment_use_case"]
    ),
) -> HealthRunDTO:
    """
    Run an assessment and return its results.

    Targets are discovered from the directory topology when the request
    names none. Healthy results are only returned with ``include_healthy``;
    the summary always counts them.

    - **422**: unknown category or inconsistent thresholds
    - **502**: no targets given and discovery failed
    """
    try:
        run = await health_assessment_use_case.execute(payload.to_domain())
    except ThresholdConfigurationError as exc:
        logger.info("assessment.request.rejected", errors=exc.errors)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": exc.message, "errors": exc.errors},
        ) from exc
    except DiscoveryError as exc:
        logger.warning("assessment.discovery.failed", error=exc.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=exc.message,
        ) from exc

    return HealthRunDTO.from_domain(run)


@router.get("/categories", response_model=List[CategoryDTO])
@inject
async def list_categories(
    list_categories_use_case: ListCategoriesUseCase = Depends(
        Provide["list_categories_use_case"]
    ),
) -> List[CategoryDTO]:
    """List every check category with its effective thresholds and parameters."""
    return await list_categories_use_case.execute()
