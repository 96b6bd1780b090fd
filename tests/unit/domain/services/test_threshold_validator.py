from __future__ import annotations

import pytest

from dirhealth.domain.entities.errors import ThresholdConfigurationError
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.thresholds import DEFAULT_THRESHOLDS, merge_thresholds
from dirhealth.domain.services import validate_thresholds


def test_default_thresholds_are_valid() -> None:
    validate_thresholds(DEFAULT_THRESHOLDS)


def test_inverted_bounds_are_reported_per_direction() -> None:
    table = merge_thresholds(
        {
            CheckCategory.REPLICATION: {"latency_minutes": (60, 15)},
            CheckCategory.CERTIFICATES: {"days_until_expiration": (7, 30)},
        }
    )

    with pytest.raises(ThresholdConfigurationError) as exc_info:
        validate_thresholds(table)

    errors = exc_info.value.errors
    assert len(errors) == 2
    assert "'replication.latency_minutes' critical bound (15) must not be lower" in (
        errors[0]
    )
    assert "must not be higher" in errors[1]
    assert exc_info.value.details == {"errors": errors}


def test_unknown_signal_negative_and_empty_bounds_are_rejected() -> None:
    table = merge_thresholds(
        {
            CheckCategory.DNS: {"made_up": (1, 2)},
            CheckCategory.PERFORMANCE: {
                "cpu_percent": (-5, 90),
                "memory_percent": (None, None),
            },
        }
    )

    with pytest.raises(ThresholdConfigurationError) as exc_info:
        validate_thresholds(table)

    errors = exc_info.value.errors
    assert "Threshold 'dns.made_up' is not a signal of this category." in errors
    assert any("cpu_percent' warning bound cannot be negative" in e for e in errors)
    expected = "memory_percent' must define a warning or a critical"
    assert any(expected in e for e in errors)


def test_single_bound_is_accepted() -> None:
    table = merge_thresholds(
        {CheckCategory.EVENT_LOGS: {"error_events": (None, 25)}}
    )
    validate_thresholds(table)
