"""Daemon settings model."""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from checkpoint.models.service import ServiceType

BUNDLED_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

DEFAULT_CRON_SCHEDULES = {
    ServiceType.WATCHER: "*/5 * * * *",
    ServiceType.DAEMON: "0 * * * *",
    ServiceType.WATCHDOG: "* * * * *",
}


class DaemonSettings(BaseModel):
    """Tunable knobs for the service lifecycle manager.

    All per-user locations hang off ``home`` so tests can point the whole
    manager at a temporary directory.
    """

    home: Path = Field(default_factory=Path.home)
    state_dir: Path | None = None
    log_dir: Path | None = None
    template_dir: Path = BUNDLED_TEMPLATE_DIR
    tool_timeout: float = Field(default=30.0, gt=0)
    restart_settle_seconds: float = Field(default=1.0, ge=0)
    daemon_interval_seconds: int = Field(default=3600, gt=0)
    cron_schedules: dict[ServiceType, str] = Field(
        default_factory=lambda: dict(DEFAULT_CRON_SCHEDULES)
    )
    env_path: str | None = None

    @model_validator(mode="after")
    def _fill_derived(self) -> "DaemonSettings":
        if self.state_dir is None:
            self.state_dir = self.home / ".checkpoint"
        if self.log_dir is None:
            self.log_dir = self.state_dir / "logs"
        if self.env_path is None:
            self.env_path = f"/usr/local/bin:/opt/homebrew/bin:/usr/bin:/bin:{self.home}/.local/bin"
        for service_type, schedule in DEFAULT_CRON_SCHEDULES.items():
            self.cron_schedules.setdefault(service_type, schedule)
        for service_type, schedule in self.cron_schedules.items():
            if len(schedule.split()) != 5:
                raise ValueError(f"cron schedule for {service_type.value} needs 5 fields: {schedule!r}")
        return self

    @property
    def launch_agents_dir(self) -> Path:
        return self.home / "Library" / "LaunchAgents"

    @property
    def systemd_user_dir(self) -> Path:
        return self.home / ".config" / "systemd" / "user"

    def pid_file(self, service_name: str) -> Path:
        """Path of the PID file a running job writes for ``service_name``."""
        state_dir = self.state_dir or self.home / ".checkpoint"
        return state_dir / f"{service_name}.pid"
