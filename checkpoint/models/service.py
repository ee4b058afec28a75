"""Service descriptor and backend models for Checkpoint."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServiceType(str, Enum):
    """Scheduling shape of an installed job.

    Watchers and watchdogs are continuous, restart-on-failure processes;
    daemons are periodic.
    """

    WATCHER = "watcher"
    DAEMON = "daemon"
    WATCHDOG = "watchdog"

    @property
    def periodic(self) -> bool:
        return self is ServiceType.DAEMON


class BackendKind(str, Enum):
    """Service-management substrate available on the host."""

    LAUNCHD = "launchd"
    SYSTEMD = "systemd"
    CRON = "cron"


class ServiceStatus(str, Enum):
    """Observed state of an installed service."""

    RUNNING = "running"
    SCHEDULED = "scheduled"
    STOPPED = "stopped"

    @property
    def active(self) -> bool:
        """True when the service is executing or armed to execute."""
        return self is not ServiceStatus.STOPPED


class ServiceDescriptor(BaseModel):
    """Everything needed to install one background job."""

    model_config = ConfigDict(frozen=True)

    service_name: str = Field(description="Logical name, unique per project and purpose")
    script_path: Path = Field(description="Executable the job runs")
    project_dir: Path = Field(description="Working directory of the job")
    project_name: str = Field(description="Human-readable project name")
    service_type: ServiceType = Field(default=ServiceType.DAEMON)

    @field_validator("service_name")
    @classmethod
    def _check_service_name(cls, value: str) -> str:
        # Used verbatim in file names, unit names and the crontab marker
        if not value or value != value.strip():
            raise ValueError("service_name must be non-empty with no surrounding whitespace")
        if any(c.isspace() for c in value) or "/" in value:
            raise ValueError("service_name must not contain whitespace or '/'")
        return value
