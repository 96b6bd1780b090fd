"""
Domain Entities Package

Value objects for results, signals, thresholds and raw observations.
"""

from .assessment import AssessmentRequest, CheckContext
from .directory import (
    CertificateInfo,
    Credentials,
    DatabaseState,
    DnsLookup,
    EventRecord,
    FileReplicationState,
    FsmoRole,
    PerformanceSnapshot,
    ReplicationFailure,
    ReplicationPartner,
    SecuritySummary,
    ServiceState,
    TimeStatus,
    TrustRelationship,
)
from .errors import (
    DiscoveryError,
    DomainError,
    ProbeError,
    ProbeExecutionError,
    ProbeTimeoutError,
    ThresholdConfigurationError,
)
from .health import (
    INFRASTRUCTURE_SCOPE,
    CheckCategory,
    CheckFailure,
    HealthCheckResult,
    HealthRun,
    HealthStatus,
    HealthSummary,
    worst_status,
)
from .signals import Measurement, Probe, Signal, SignalAssessment
from .thresholds import (
    DEFAULT_THRESHOLDS,
    Direction,
    ThresholdOverrides,
    ThresholdPair,
    ThresholdTable,
    merge_thresholds,
    thresholds_for,
)

__all__ = [
    "AssessmentRequest",
    "CheckContext",
    "CertificateInfo",
    "Credentials",
    "DatabaseState",
    "DnsLookup",
    "EventRecord",
    "FileReplicationState",
    "FsmoRole",
    "PerformanceSnapshot",
    "ReplicationFailure",
    "ReplicationPartner",
    "SecuritySummary",
    "ServiceState",
    "TimeStatus",
    "TrustRelationship",
    "DiscoveryError",
    "DomainError",
    "ProbeError",
    "ProbeExecutionError",
    "ProbeTimeoutError",
    "ThresholdConfigurationError",
    "INFRASTRUCTURE_SCOPE",
    "CheckCategory",
    "CheckFailure",
    "HealthCheckResult",
    "HealthRun",
    "HealthStatus",
    "HealthSummary",
    "worst_status",
    "Measurement",
    "Probe",
    "Signal",
    "SignalAssessment",
    "DEFAULT_THRESHOLDS",
    "Direction",
    "ThresholdOverrides",
    "ThresholdPair",
    "ThresholdTable",
    "merge_thresholds",
    "thresholds_for",
]
