"""
Controllers Package - Presentation Layer

This package contains FastAPI controllers (routers) that handle
HTTP requests and responses. Controllers map between API DTOs and
application layer use cases and translate domain errors to HTTP codes.
"""

from .assessment_controller import router as assessment_router
from .system_controller import router as system_router

__all__ = ["assessment_router", "system_router"]
