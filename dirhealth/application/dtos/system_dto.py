"""DTOs for service metadata endpoints."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from dirhealth.domain.entities.health import CheckCategory


class ApplicationInfoDTO(BaseModel):
    """DTO representing metadata returned by /info."""

    name: str = Field(description="Application name")
    description: str = Field(description="Application description")
    version: str = Field(description="Application version")
    environment: str = Field(description="Current deployment environment")
    started_at: datetime = Field(description="Application start timestamp")
    uptime_seconds: float = Field(description="Uptime in seconds")
    categories: List[CheckCategory] = Field(
        default_factory=list, description="Categories with a registered evaluator"
    )
