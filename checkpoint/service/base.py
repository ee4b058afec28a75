"""Base service manager interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from checkpoint.exceptions import ToggleFailedError
from checkpoint.models.service import BackendKind, ServiceDescriptor, ServiceStatus
from checkpoint.models.settings import DaemonSettings
from checkpoint.service.runner import CommandRunner, SubprocessRunner, ToolResult

logger = logging.getLogger(__name__)


class ServiceManager(ABC):
    """Abstract base class for per-user service backends.

    Every method blocks until the native tool calls it issues have finished.
    Callers must serialize operations on the same service name themselves.
    """

    kind: BackendKind

    def __init__(
        self,
        settings: DaemonSettings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.settings = settings or DaemonSettings()
        self.runner = runner or SubprocessRunner(timeout=self.settings.tool_timeout)

    @abstractmethod
    def install(self, descriptor: ServiceDescriptor) -> bool:
        """Install (or reinstall) a service and activate it.

        Args:
            descriptor: What to run and how.

        Returns:
            True if the final activation step succeeded.

        Raises:
            InstallFailedError: If no artifact could be produced.
        """
        pass

    @abstractmethod
    def uninstall(self, service_name: str) -> bool:
        """Remove every artifact for a service, current and legacy.

        Uninstalling a service that is not installed is a successful no-op.

        Returns:
            True if uninstallation succeeded.
        """
        pass

    @abstractmethod
    def start(self, service_name: str) -> bool:
        """Start an installed service.

        Returns:
            True if start succeeded.

        Raises:
            ToggleFailedError: If the service is not installed.
        """
        pass

    @abstractmethod
    def stop(self, service_name: str) -> bool:
        """Stop an installed service.

        Returns:
            True if stop succeeded.

        Raises:
            ToggleFailedError: If the service is not installed.
        """
        pass

    @abstractmethod
    def restart(self, service_name: str) -> bool:
        """Restart an installed service.

        Returns:
            True if restart succeeded.

        Raises:
            ToggleFailedError: If the service is not installed.
        """
        pass

    @abstractmethod
    def status(self, service_name: str) -> ServiceStatus:
        """Get the current service status."""
        pass

    @abstractmethod
    def list(self, pattern: str) -> list[str]:
        """Return raw backend listing lines containing pattern."""
        pass

    @abstractmethod
    def artifacts(self, service_name: str) -> list[Path | str]:
        """Return the artifacts currently present for a service.

        Files are returned as paths; crontab entries as their line text.
        """
        pass

    @abstractmethod
    def installed_names(self) -> list[str]:
        """Return the logical names of every service with an artifact on disk."""
        pass

    def is_installed(self, service_name: str) -> bool:
        """Check if any artifact exists for the service."""
        return bool(self.artifacts(service_name))

    def _require_installed(self, service_name: str, action: str) -> None:
        if not self.is_installed(service_name):
            raise ToggleFailedError(service_name, action)

    def _run(self, *args: str, input: str | None = None) -> ToolResult:
        """Run a tool whose failure is expected or non-fatal.

        Non-zero exits are logged at debug level and returned to the caller.
        """
        result = self.runner.run(list(args), input=input)
        if not result.ok:
            logger.debug("%s: exit %d: %s", " ".join(args), result.exit_code, result.message)
        return result

    @staticmethod
    def _filter(lines: list[str], pattern: str) -> list[str]:
        return [line for line in lines if line.strip() and pattern in line]


def get_service_manager(
    kind: BackendKind,
    settings: DaemonSettings | None = None,
    runner: CommandRunner | None = None,
) -> ServiceManager:
    """Get the service manager implementation for a backend.

    Args:
        kind: Backend to drive.
        settings: Optional settings shared by all backends.
        runner: Optional process runner (tests pass a fake).

    Returns:
        ServiceManager instance for the backend.
    """
    if kind is BackendKind.LAUNCHD:
        from checkpoint.service.launchd import LaunchdServiceManager

        return LaunchdServiceManager(settings, runner)
    elif kind is BackendKind.SYSTEMD:
        from checkpoint.service.systemd import SystemdServiceManager

        return SystemdServiceManager(settings, runner)
    else:
        from checkpoint.service.cron import CronServiceManager

        return CronServiceManager(settings, runner)
