"""
Threshold tables.

Static warning/critical bounds per category and signal. Tables are read-only;
callers derive new tables with :func:`merge_thresholds`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence

from dirhealth.domain.entities.health import CheckCategory


class Direction(str, Enum):
    """Which way a measurement gets worse."""

    HIGHER_IS_WORSE = "higher_is_worse"
    LOWER_IS_WORSE = "lower_is_worse"


@dataclass(frozen=True, slots=True)
class ThresholdPair:
    """Warning and critical bounds for one signal.

    ``inclusive`` treats a value equal to a bound as crossing it.
    """

    warning: Optional[float]
    critical: Optional[float]
    direction: Direction = Direction.HIGHER_IS_WORSE
    inclusive: bool = False

    def crosses(self, value: float, bound: Optional[float]) -> bool:
        if bound is None:
            return False
        if self.direction is Direction.HIGHER_IS_WORSE:
            return value >= bound if self.inclusive else value > bound
        return value <= bound if self.inclusive else value < bound

    def with_bounds(
        self, warning: Optional[float], critical: Optional[float]
    ) -> "ThresholdPair":
        return replace(self, warning=warning, critical=critical)


ThresholdTable = Mapping[str, ThresholdPair]
ThresholdOverrides = Mapping[CheckCategory, Mapping[str, Sequence[Optional[float]]]]

_HIGHER = Direction.HIGHER_IS_WORSE
_LOWER = Direction.LOWER_IS_WORSE

DEFAULT_THRESHOLDS: Mapping[CheckCategory, ThresholdTable] = MappingProxyType(
    {
        CheckCategory.REPLICATION: MappingProxyType(
            {
                "latency_minutes": ThresholdPair(15, 60, _HIGHER),
                "consecutive_failures": ThresholdPair(None, 0, _HIGHER),
            }
        ),
        CheckCategory.PERFORMANCE: MappingProxyType(
            {
                "cpu_percent": ThresholdPair(70, 90, _HIGHER),
                "memory_percent": ThresholdPair(80, 90, _HIGHER),
                "disk_free_percent": ThresholdPair(20, 10, _LOWER),
            }
        ),
        CheckCategory.SYSVOL: MappingProxyType(
            {
                "backlog_count": ThresholdPair(50, 100, _HIGHER),
                "replication_lag_minutes": ThresholdPair(60, 120, _HIGHER),
            }
        ),
        CheckCategory.TIME_SYNC: MappingProxyType(
            {"offset_seconds": ThresholdPair(5, 10, _HIGHER)}
        ),
        CheckCategory.CERTIFICATES: MappingProxyType(
            {"days_until_expiration": ThresholdPair(30, 7, _LOWER)}
        ),
        CheckCategory.DATABASE: MappingProxyType(
            {
                "fragmentation_percent": ThresholdPair(20, 40, _HIGHER),
                "backup_age_days": ThresholdPair(7, 30, _HIGHER),
                "disk_free_percent": ThresholdPair(20, 10, _LOWER),
            }
        ),
        CheckCategory.SECURITY: MappingProxyType(
            {
                "account_lockouts": ThresholdPair(None, 10, _HIGHER, inclusive=True),
                "failed_authentications": ThresholdPair(
                    None, 50, _HIGHER, inclusive=True
                ),
                "ntlm_percent": ThresholdPair(50, None, _HIGHER),
            }
        ),
        CheckCategory.EVENT_LOGS: MappingProxyType(
            {
                "critical_events": ThresholdPair(None, 0, _HIGHER),
                "error_events": ThresholdPair(0, 10, _HIGHER),
            }
        ),
        CheckCategory.DNS: MappingProxyType(
            {"query_time_ms": ThresholdPair(500, 2000, _HIGHER)}
        ),
    }
)


def thresholds_for(
    category: CheckCategory,
    table: Optional[Mapping[CheckCategory, ThresholdTable]] = None,
) -> ThresholdTable:
    """Return the table for ``category``; empty for categories without one."""
    source = DEFAULT_THRESHOLDS if table is None else table
    return source.get(category, MappingProxyType({}))


def merge_thresholds(
    overrides: ThresholdOverrides,
    base: Optional[Mapping[CheckCategory, ThresholdTable]] = None,
) -> Dict[CheckCategory, Dict[str, ThresholdPair]]:
    """Apply ``(warning, critical)`` overrides on top of ``base``.

    Direction and inclusiveness always come from the base pair. Unknown
    signal names are kept so that validation can reject them.
    """
    source = DEFAULT_THRESHOLDS if base is None else base
    merged: Dict[CheckCategory, Dict[str, ThresholdPair]] = {
        category: dict(table) for category, table in source.items()
    }
    for category, signals in overrides.items():
        category_table = merged.setdefault(category, {})
        for name, bounds in signals.items():
            warning, critical = bounds
            existing = category_table.get(name)
            if existing is None:
                category_table[name] = ThresholdPair(warning, critical)
            else:
                category_table[name] = existing.with_bounds(warning, critical)
    return merged

