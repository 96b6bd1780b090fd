"""Application-level configuration structures."""

from dirhealth.application.models.assessment_defaults import AssessmentDefaults
from dirhealth.application.models.system_info import SystemInfo

__all__ = ["AssessmentDefaults", "SystemInfo"]
