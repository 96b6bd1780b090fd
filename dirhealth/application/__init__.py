"""
Application Layer

Category evaluators, the assessment orchestrator and the DTOs exposed to the
presentation layer.
"""

from dirhealth.application import checks, dtos, models, use_cases

__all__ = ["checks", "dtos", "models", "use_cases"]
