"""Directory-service health assessment engine."""

__version__ = "1.0.0"
