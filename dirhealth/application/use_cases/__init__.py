"""
Use Cases Package - Application Layer

Application services coordinating domain entities and gateways.
"""

from dirhealth.application.use_cases.category_use_cases import ListCategoriesUseCase
from dirhealth.application.use_cases.health_assessment_use_case import (
    HealthAssessmentUseCase,
)
from dirhealth.application.use_cases.system_use_cases import GetApplicationInfoUseCase

__all__ = [
    "GetApplicationInfoUseCase",
    "HealthAssessmentUseCase",
    "ListCategoriesUseCase",
]
