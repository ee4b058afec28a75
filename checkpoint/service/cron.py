"""Cron fallback service manager.

Each service is one crontab line tagged with a trailing ``# checkpoint:<name>``
marker. The crontab is always rewritten as a whole through ``crontab -`` so a
reinstall replaces the tagged line instead of appending a duplicate.
"""

from __future__ import annotations

import dataclasses
import logging
import shlex
from pathlib import Path

from checkpoint.exceptions import InstallFailedError, TemplateError
from checkpoint.models.service import BackendKind, ServiceDescriptor, ServiceStatus
from checkpoint.service.base import ServiceManager
from checkpoint.service.identity import ServiceIdentity, cron_marker_name
from checkpoint.service.runner import ToolResult
from checkpoint.service.templates import TemplateVars, find_template, render
from checkpoint.utils.process import running_pid, terminate_process

logger = logging.getLogger(__name__)

# Messages crontab implementations print when the user has no crontab yet
_NO_CRONTAB_MARKERS = ("no crontab", "can't open", "no such file")


class CronServiceManager(ServiceManager):
    """Universal fallback using the user's crontab."""

    kind = BackendKind.CRON

    def install(self, descriptor: ServiceDescriptor) -> bool:
        """Replace this service's crontab line (or add it).

        Returns:
            True if the new crontab was accepted.

        Raises:
            InstallFailedError: If the template is missing or renders to more
                than one line, or the current crontab cannot be read.
        """
        ident = ServiceIdentity(descriptor.service_name)
        entry = f"{self._render_command(descriptor)} {ident.cron_marker}"

        current = self._read_crontab()
        if current is None:
            raise InstallFailedError("Cannot read the current crontab; refusing to overwrite it")

        self.settings.log_dir.mkdir(parents=True, exist_ok=True)

        lines = [line for line in current if not ident.owns_cron_line(line)]
        lines.append(entry)
        result = self._write_crontab(lines)
        if result.ok:
            logger.info("Installed cron entry: %s", ident.cron_marker)
        return result.ok

    def uninstall(self, service_name: str) -> bool:
        """Drop this service's line, removing the crontab if nothing is left."""
        ident = ServiceIdentity(service_name)
        current = self._read_crontab()
        if current is None:
            logger.debug("Cannot read crontab, leaving %s in place", service_name)
            return False

        remaining = [line for line in current if not ident.owns_cron_line(line)]
        if len(remaining) == len(current):
            logger.debug("No cron entry for %s, nothing to uninstall", service_name)
            return True

        if any(line.strip() for line in remaining):
            result = self._write_crontab(remaining)
        else:
            result = self._run("crontab", "-r")

        if result.ok:
            logger.info("Uninstalled cron entry: %s", ident.cron_marker)
        return result.ok

    def start(self, service_name: str) -> bool:
        """No-op: the crontab line keeps firing on cron's own clock."""
        self._require_installed(service_name, "start")
        logger.debug("cron schedules %s itself; start is a no-op", service_name)
        return True

    def stop(self, service_name: str) -> bool:
        """Terminate the tracked run, if one is in progress.

        The schedule itself stays in place; the next tick starts a new run.
        """
        self._require_installed(service_name, "stop")
        pid_file = self.settings.pid_file(service_name)
        pid = running_pid(pid_file)

        stopped = True
        if pid is not None:
            logger.debug("Terminating %s (PID %d)", service_name, pid)
            stopped = terminate_process(pid)
        pid_file.unlink(missing_ok=True)
        return stopped

    def restart(self, service_name: str) -> bool:
        self._require_installed(service_name, "restart")
        stopped = self.stop(service_name)
        return self.start(service_name) and stopped

    def status(self, service_name: str) -> ServiceStatus:
        """SCHEDULED when the line exists, RUNNING while its PID is alive."""
        if not self.artifacts(service_name):
            return ServiceStatus.STOPPED
        if running_pid(self.settings.pid_file(service_name)) is not None:
            return ServiceStatus.RUNNING
        return ServiceStatus.SCHEDULED

    def list(self, pattern: str) -> list[str]:
        return self._filter(self._read_crontab() or [], pattern)

    def artifacts(self, service_name: str) -> list[Path | str]:
        ident = ServiceIdentity(service_name)
        return [line for line in self._read_crontab() or [] if ident.owns_cron_line(line)]

    def installed_names(self) -> list[str]:
        names: list[str] = []
        for line in self._read_crontab() or []:
            name = cron_marker_name(line)
            if name and name not in names:
                names.append(name)
        return names

    def _read_crontab(self) -> list[str] | None:
        """Current crontab lines; [] when the user has none, None if unreadable."""
        result = self._run("crontab", "-l")
        if result.ok:
            return result.stdout.splitlines()
        if any(marker in result.message.lower() for marker in _NO_CRONTAB_MARKERS):
            return []
        return None

    def _write_crontab(self, lines: list[str]) -> ToolResult:
        return self._run("crontab", "-", input="\n".join(lines) + "\n")

    def _render_command(self, descriptor: ServiceDescriptor) -> str:
        template = find_template(descriptor.service_type, self.kind, self.settings.template_dir)
        if template is None:
            raise InstallFailedError(f"No cron template in {self.settings.template_dir}")

        variables = TemplateVars.build(
            descriptor.project_name,
            descriptor.project_dir,
            descriptor.script_path,
            self.settings.home,
            service_name=descriptor.service_name,
            log_dir=str(self.settings.log_dir),
            env_path=self.settings.env_path,
            interval=str(self.settings.daemon_interval_seconds),
        )
        variables = _cron_escaped(variables)
        variables = dataclasses.replace(
            variables, schedule=self.settings.cron_schedules[descriptor.service_type]
        )

        command = render(template, variables).strip()
        if not command or "\n" in command:
            raise TemplateError(f"{template.name} must render to exactly one crontab line")
        return command


def _cron_escaped(variables: TemplateVars) -> TemplateVars:
    # Values land in a shell command line; an unescaped % ends the command
    values = {
        field.name: shlex.quote(value).replace("%", r"\%")
        for field in dataclasses.fields(variables)
        if (value := getattr(variables, field.name)) is not None
    }
    return dataclasses.replace(variables, **values)
