"""Domain service helpers for validating threshold tables."""

from typing import List, Mapping

from dirhealth.domain.entities.errors import ThresholdConfigurationError
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.thresholds import (
    DEFAULT_THRESHOLDS,
    Direction,
    ThresholdPair,
    ThresholdTable,
)


def _validate_pair(prefix: str, pair: ThresholdPair, errors: List[str]) -> None:
    if pair.warning is None and pair.critical is None:
        errors.append(f"{prefix} must define a warning or a critical bound.")
        return

    for bound_name in ("warning", "critical"):
        bound = getattr(pair, bound_name)
        if bound is not None and bound < 0:
            errors.append(f"{prefix} {bound_name} bound cannot be negative.")

    if pair.warning is None or pair.critical is None:
        return

    if pair.direction is Direction.HIGHER_IS_WORSE and pair.critical < pair.warning:
        errors.append(
            f"{prefix} critical bound ({pair.critical:g}) must not be lower "
            f"than the warning bound ({pair.warning:g})."
        )
    if pair.direction is Direction.LOWER_IS_WORSE and pair.critical > pair.warning:
        errors.append(
            f"{prefix} critical bound ({pair.critical:g}) must not be higher "
            f"than the warning bound ({pair.warning:g})."
        )


def validate_thresholds(
    table: Mapping[CheckCategory, ThresholdTable],
    known: Mapping[CheckCategory, ThresholdTable] = DEFAULT_THRESHOLDS,
) -> None:
    """Validate bound ordering and signal names of a threshold table.

    Raises:
        ThresholdConfigurationError: If one or more rules fail.
    """

    errors: List[str] = []

    for category, signals in table.items():
        if not isinstance(category, CheckCategory):
            errors.append(f"Unknown check category '{category}'.")
            continue
        known_signals = known.get(category, {})
        for name, pair in signals.items():
            prefix = f"Threshold '{category.value}.{name}'"
            if name not in known_signals:
                errors.append(f"{prefix} is not a signal of this category.")
                continue
            _validate_pair(prefix, pair, errors)

    if errors:
        raise ThresholdConfigurationError(errors)
