"""
Application Settings - Main Layer

Use Pydantic Settings for configuration management.
This module handles configuration settings provided using
environment variables, .env files and default values.
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from dirhealth.application.models import AssessmentDefaults
from dirhealth.domain.entities.directory import Credentials
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.shared import EnumEnvironment, EnumLogLevel

BoundsOverride = Tuple[Optional[float], Optional[float]]


class ApiSettings(BaseSettings):
    """HTTP API configuration settings."""

    title: str = Field(default="dirhealth", description="API title")
    description: str = Field(
        default="Health assessment of directory service infrastructure",
        description="API description",
    )
    version: str = Field(default="1.0.0", description="API version")
    host: str = Field(default="127.0.0.1", description="Interface to bind")
    port: int = Field(default=8000, description="Port to bind the server")
    reload: bool = Field(
        default=False, description="Enable auto-reload for development"
    )

    model_config = SettingsConfigDict(
        env_prefix="API_", case_sensitive=False, extra="ignore"
    )


class AssessmentSettings(BaseSettings):
    """Defaults applied to every assessment run."""

    probe_timeout: float = Field(
        default=15.0, gt=0, description="Seconds allowed for one collaborator call"
    )
    check_timeout: float = Field(
        default=120.0, gt=0, description="Seconds allowed for one category check"
    )
    max_concurrency: int = Field(
        default=10, ge=1, description="Targets evaluated at the same time"
    )
    include_healthy: bool = Field(
        default=False, description="Return healthy results by default"
    )
    include_extended: bool = Field(
        default=False, description="Attach raw detail to results by default"
    )
    categories: Optional[List[CheckCategory]] = Field(
        default=None, description="Categories run when a request names none"
    )
    targets: List[str] = Field(
        default_factory=list, description="Servers assessed when a request names none"
    )
    domain: Optional[str] = Field(
        default=None, description="DNS name of the directory domain"
    )
    thresholds: Dict[CheckCategory, Dict[str, BoundsOverride]] = Field(
        default_factory=dict,
        description="Per-category [warning, critical] overrides (JSON)",
    )

    model_config = SettingsConfigDict(
        env_prefix="ASSESSMENT_", case_sensitive=False, extra="ignore"
    )


class CredentialSettings(BaseSettings):
    """Alternate identity for remote probes."""

    username: Optional[str] = Field(default=None, description="Probe account")
    password: Optional[SecretStr] = Field(
        default=None, description="Probe account password"
    )
    password_file: Optional[Path] = Field(
        default=None, description="File holding the password (Docker secret)"
    )

    model_config = SettingsConfigDict(
        env_prefix="PROBE_", case_sensitive=False, extra="ignore"
    )

    def to_credentials(self) -> Optional[Credentials]:
        """Build credentials; None when no username is configured."""
        if not self.username:
            return None
        if self.password is not None:
            password = self.password.get_secret_value()
        elif self.password_file is not None:
            password = self.password_file.read_text(encoding="utf-8").strip()
        else:
            password = ""
        return Credentials(username=self.username, password=password)


class PowerShellSettings(BaseSettings):
    """PowerShell runner configuration settings."""

    executable: str = Field(default="pwsh", description="PowerShell executable")

    model_config = SettingsConfigDict(
        env_prefix="POWERSHELL_", case_sensitive=False, extra="ignore"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    level: EnumLogLevel = Field(default=EnumLogLevel.INFO, description="Logging level")
    file_path: Optional[str] = Field(
        default=None, description="Log file path (if None, logs to console)"
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_", case_sensitive=False, extra="ignore"
    )


class AppSettings(BaseSettings):
    """Main application settings, aggregating all sub-settings."""

    environment: EnumEnvironment = Field(
        default=EnumEnvironment.DEVELOPMENT, description="Application environment"
    )

    api: ApiSettings = Field(default_factory=ApiSettings)
    assessment: AssessmentSettings = Field(default_factory=AssessmentSettings)
    credentials: CredentialSettings = Field(default_factory=CredentialSettings)
    powershell: PowerShellSettings = Field(default_factory=PowerShellSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    def assessment_defaults(self) -> AssessmentDefaults:
        """Settings subset consumed by the assessment use case."""
        assessment = self.assessment
        return AssessmentDefaults(
            probe_timeout=assessment.probe_timeout,
            check_timeout=assessment.check_timeout,
            max_concurrency=assessment.max_concurrency,
            credentials=self.credentials.to_credentials(),
            domain=assessment.domain,
            targets=tuple(assessment.targets),
            categories=assessment.categories,
            threshold_overrides={
                category: {name: tuple(bounds) for name, bounds in signals.items()}
                for category, signals in assessment.thresholds.items()
            },
        )


def get_settings() -> AppSettings:
    """
    Get application settings instance Factory.

    Used to be mocked in tests, allowing different settings based on environment.
    """
    return AppSettings()
