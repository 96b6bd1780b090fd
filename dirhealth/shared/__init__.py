"""
Shared module - Cross-cutting concerns

Constants and logging helpers used by every layer. Nothing here may
depend on the domain, application or infrastructure packages.
"""

from .consts import EnumEnvironment, EnumLogLevel, EnumOutputFormat
from .logging import configure_logging, get_logger, update_logging_from_settings

__all__ = [
    "EnumEnvironment",
    "EnumLogLevel",
    "EnumOutputFormat",
    "configure_logging",
    "get_logger",
    "update_logging_from_settings",
]
