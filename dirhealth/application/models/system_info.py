"""Static metadata describing the running service."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SystemInfo:
    title: str
    description: str
    version: str
    environment: str
