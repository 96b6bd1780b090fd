"""
Domain Errors

Error classes raised across the assessment engine. Probe errors stay
inside evaluators; discovery and configuration errors reach the caller.
"""

from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ProbeError(DomainError):
    """Raised by a collaborator when a probe cannot return a signal."""


class ProbeTimeoutError(ProbeError):
    """Raised when a probe does not answer within its timeout."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"{operation} timed out after {timeout:g}s",
            {"operation": operation, "timeout": timeout},
        )


class ProbeExecutionError(ProbeError):
    """Raised when a remote query fails or returns unusable output."""


class DiscoveryError(DomainError):
    """Raised when the target set cannot be obtained from the topology."""


class ThresholdConfigurationError(DomainError):
    """Raised when caller supplied thresholds or options are invalid."""

    def __init__(self, errors: List[str]):
        super().__init__(
            "Assessment configuration is invalid.", details={"errors": errors}
        )
        self.errors = errors
