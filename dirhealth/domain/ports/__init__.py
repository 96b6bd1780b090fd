"""Domain ports package."""

from .health_check import IHealthCheck

__all__ = ["IHealthCheck"]
