"""Backend-independent facade over the service drivers."""

from __future__ import annotations

import logging
from pathlib import Path

from checkpoint.exceptions import ParseFailedError, ToggleFailedError
from checkpoint.models.service import BackendKind, ServiceDescriptor, ServiceStatus
from checkpoint.models.settings import DaemonSettings
from checkpoint.service.base import ServiceManager, get_service_manager
from checkpoint.service.detect import BackendDetector
from checkpoint.service.identity import CURRENT_PATTERN, LEGACY_PATTERN, parse_service_name
from checkpoint.service.runner import CommandRunner

logger = logging.getLogger(__name__)


class DaemonManager:
    """Install and control background jobs on whatever the host provides.

    The backend is resolved once, when the manager is built, from the
    injected detector. Pass ``BackendDetector(fixed=...)`` to pin it.
    """

    def __init__(
        self,
        detector: BackendDetector | None = None,
        settings: DaemonSettings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.detector = detector or BackendDetector()
        self.settings = settings or DaemonSettings()
        self.driver: ServiceManager = get_service_manager(
            self.detector.detect(), self.settings, runner
        )

    @property
    def backend(self) -> BackendKind:
        return self.driver.kind

    def install(self, descriptor: ServiceDescriptor) -> bool:
        return self.driver.install(descriptor)

    def uninstall(self, service_name: str) -> bool:
        return self.driver.uninstall(service_name)

    def start(self, service_name: str) -> bool:
        return self.driver.start(service_name)

    def stop(self, service_name: str) -> bool:
        return self.driver.stop(service_name)

    def restart(self, service_name: str) -> bool:
        return self.driver.restart(service_name)

    def status(self, service_name: str) -> ServiceStatus:
        return self.driver.status(service_name)

    def list(self, pattern: str = CURRENT_PATTERN) -> list[str]:
        """Raw backend listing lines containing pattern (not normalized)."""
        return self.driver.list(pattern)

    def is_installed(self, service_name: str) -> bool:
        return self.driver.is_installed(service_name)

    def artifacts(self, service_name: str) -> list[Path | str]:
        return self.driver.artifacts(service_name)

    def service_names(self) -> list[str]:
        """Logical names of every service the backend currently lists.

        Covers both the current and the legacy naming; lines that merely
        contain the pattern without being one of ours are skipped.
        """
        names: list[str] = []
        for pattern in (CURRENT_PATTERN, LEGACY_PATTERN):
            for line in self.driver.list(pattern):
                try:
                    name = parse_service_name(line, self.backend)
                except ParseFailedError:
                    logger.debug("Skipping unrelated listing line: %s", line)
                    continue
                if name not in names:
                    names.append(name)
        return names

    def installed_names(self) -> list[str]:
        return self.driver.installed_names()

    def stop_all(self) -> dict[str, bool]:
        """Stop every installed service (pause)."""
        return self._toggle_all("stop")

    def start_all(self) -> dict[str, bool]:
        """Start every installed service (resume)."""
        return self._toggle_all("start")

    def _toggle_all(self, action: str) -> dict[str, bool]:
        results: dict[str, bool] = {}
        for name in self.driver.installed_names():
            try:
                results[name] = getattr(self.driver, action)(name)
            except ToggleFailedError as e:
                logger.debug("%s", e)
                results[name] = False
        return results
