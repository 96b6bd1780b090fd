"""Use cases for category metadata."""

from typing import List, Mapping, Optional

from dirhealth.application.dtos.health_dto import CategoryDTO
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.thresholds import (
    ThresholdOverrides,
    merge_thresholds,
    thresholds_for,
)
from dirhealth.domain.ports.health_check import IHealthCheck


class ListCategoriesUseCase:
    """Use case returning every category with its effective defaults."""

    def __init__(
        self,
        checks: Mapping[CheckCategory, IHealthCheck],
        threshold_overrides: Optional[ThresholdOverrides] = None,
    ) -> None:
        self._checks = checks
        self._thresholds = merge_thresholds(threshold_overrides or {})

    async def execute(self) -> List[CategoryDTO]:
        return [
            CategoryDTO.build(
                category,
                thresholds_for(category, self._thresholds),
                self._checks[category].default_parameters,
            )
            for category in CheckCategory.ordered()
            if category in self._checks
        ]
