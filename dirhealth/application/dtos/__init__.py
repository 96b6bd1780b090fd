"""
DTOs Package - Application Layer

Pydantic models exchanged between the application and presentation layers.
"""

from dirhealth.application.dtos.health_dto import (
    AssessmentRequestDTO,
    CategoryDTO,
    CheckFailureDTO,
    HealthCheckResultDTO,
    HealthRunDTO,
    HealthSummaryDTO,
    ThresholdDTO,
)
from dirhealth.application.dtos.system_dto import ApplicationInfoDTO

__all__ = [
    "ApplicationInfoDTO",
    "AssessmentRequestDTO",
    "CategoryDTO",
    "CheckFailureDTO",
    "HealthCheckResultDTO",
    "HealthRunDTO",
    "HealthSummaryDTO",
    "ThresholdDTO",
]
