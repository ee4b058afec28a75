"""Linux systemd --user service manager."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from checkpoint.exceptions import InstallFailedError, TemplateError
from checkpoint.models.service import BackendKind, ServiceDescriptor, ServiceStatus
from checkpoint.service.base import ServiceManager
from checkpoint.service.identity import SYSTEMD_PREFIX, ServiceIdentity
from checkpoint.service.runner import ToolResult
from checkpoint.service.templates import TemplateVars, find_template, find_timer_template, render
from checkpoint.utils.files import write_atomic

logger = logging.getLogger(__name__)

ACTIVE_STATES = ("active", "activating", "reloading")


class SystemdServiceManager(ServiceManager):
    """Linux systemd user-unit service manager.

    Periodic (daemon) services get a paired ``.timer`` that owns the
    schedule; the timer is what gets enabled and started. Continuous
    services are enabled and started directly.
    """

    kind = BackendKind.SYSTEMD

    @property
    def unit_dir(self) -> Path:
        return self.settings.systemd_user_dir

    def install(self, descriptor: ServiceDescriptor) -> bool:
        """Write the unit (and timer) files, reload, enable and start.

        Returns:
            True if starting the service or its timer succeeded.

        Raises:
            InstallFailedError: If a required template is missing or a unit
                file cannot be written.
        """
        ident = ServiceIdentity(descriptor.service_name)
        service_path = ident.service_path(self.unit_dir)
        timer_path = ident.timer_path(self.unit_dir)
        periodic = descriptor.service_type.periodic

        # Render everything before touching the running units
        variables = self._template_vars(descriptor, ident)
        template = find_template(descriptor.service_type, self.kind, self.settings.template_dir)
        if template is None:
            raise InstallFailedError(
                f"No systemd template for service type '{descriptor.service_type.value}' "
                f"in {self.settings.template_dir}"
            )
        service_content = render(template, variables)

        timer_content = None
        if periodic:
            timer_template = find_timer_template(self.settings.template_dir)
            if timer_template is None:
                raise InstallFailedError(f"No systemd timer template in {self.settings.template_dir}")
            timer_content = render(timer_template, variables)

        # Ensure directories exist
        self.unit_dir.mkdir(parents=True, exist_ok=True)
        self.settings.log_dir.mkdir(parents=True, exist_ok=True)

        # Stop existing units; "not loaded" failures are expected
        if timer_path.exists():
            self._ctl("stop", ident.systemd_timer)
        self._ctl("stop", ident.systemd_service)

        try:
            write_atomic(service_path, service_content)
            if timer_content is not None:
                write_atomic(timer_path, timer_content)
        except OSError as e:
            raise InstallFailedError(f"Cannot write unit files for {ident.systemd_name}: {e}") from e

        if not periodic and timer_path.exists():
            # Previously installed as a daemon; the timer would also fire the service
            self._ctl("disable", ident.systemd_timer)
            timer_path.unlink(missing_ok=True)

        if periodic:
            # Previously installed as a watcher or watchdog; only the timer may start it
            self._ctl("disable", ident.systemd_service)

        self._ctl("daemon-reload")

        target = ident.systemd_timer if periodic else ident.systemd_service
        self._ctl("enable", target)
        result = self._ctl("start", target)
        if result.ok:
            logger.info("Installed and started systemd unit: %s", target)
        return result.ok

    def uninstall(self, service_name: str) -> bool:
        """Stop, disable and delete the unit and its timer, then reload."""
        ident = ServiceIdentity(service_name)
        service_path = ident.service_path(self.unit_dir)
        timer_path = ident.timer_path(self.unit_dir)

        if not service_path.exists() and not timer_path.exists():
            logger.debug("No systemd unit for %s, nothing to uninstall", service_name)
            return True

        if timer_path.exists():
            self._ctl("stop", ident.systemd_timer)
            self._ctl("disable", ident.systemd_timer)
            timer_path.unlink(missing_ok=True)

        self._ctl("stop", ident.systemd_service)
        self._ctl("disable", ident.systemd_service)
        service_path.unlink(missing_ok=True)

        self._ctl("daemon-reload")
        logger.info("Uninstalled systemd unit: %s", ident.systemd_name)
        return True

    def start(self, service_name: str) -> bool:
        self._require_installed(service_name, "start")
        return self._ctl("start", self._target(service_name)).ok

    def stop(self, service_name: str) -> bool:
        """Stop the timer (if any) so it stops firing, then the service."""
        self._require_installed(service_name, "stop")
        ident = ServiceIdentity(service_name)
        timer_ok = True
        if ident.timer_path(self.unit_dir).exists():
            timer_ok = self._ctl("stop", ident.systemd_timer).ok
        return self._ctl("stop", ident.systemd_service).ok and timer_ok

    def restart(self, service_name: str) -> bool:
        self._require_installed(service_name, "restart")
        return self._ctl("restart", self._target(service_name)).ok

    def status(self, service_name: str) -> ServiceStatus:
        """Query ``is-active`` for the service, then for its timer.

        A daemon whose timer is armed but whose service is idle between runs
        reports SCHEDULED.
        """
        ident = ServiceIdentity(service_name)
        if self._is_active(ident.systemd_service):
            return ServiceStatus.RUNNING
        if ident.timer_path(self.unit_dir).exists() and self._is_active(ident.systemd_timer):
            return ServiceStatus.SCHEDULED
        return ServiceStatus.STOPPED

    def list(self, pattern: str) -> list[str]:
        result = self._ctl(
            "list-units", "--all", "--type=service,timer", "--no-legend", "--plain"
        )
        if not result.ok:
            return []
        return self._filter(result.stdout.splitlines(), pattern)

    def artifacts(self, service_name: str) -> list[Path | str]:
        ident = ServiceIdentity(service_name)
        paths = (ident.service_path(self.unit_dir), ident.timer_path(self.unit_dir))
        return [p for p in paths if p.exists()]

    def installed_names(self) -> list[str]:
        names: list[str] = []
        for pattern in (f"{SYSTEMD_PREFIX}*.service", f"{SYSTEMD_PREFIX}*.timer"):
            for path in sorted(self.unit_dir.glob(pattern)):
                name = path.stem[len(SYSTEMD_PREFIX) :]
                if name and name not in names:
                    names.append(name)
        return names

    def _target(self, service_name: str) -> str:
        """The timer for timer-activated services, else the service itself."""
        ident = ServiceIdentity(service_name)
        if ident.timer_path(self.unit_dir).exists():
            return ident.systemd_timer
        return ident.systemd_service

    def _is_active(self, unit: str) -> bool:
        result = self._ctl("is-active", unit)
        return result.stdout.strip() in ACTIVE_STATES

    def _ctl(self, *args: str) -> ToolResult:
        return self._run("systemctl", "--user", *args)

    def _template_vars(self, descriptor: ServiceDescriptor, ident: ServiceIdentity) -> TemplateVars:
        variables = TemplateVars.build(
            descriptor.project_name,
            descriptor.project_dir,
            descriptor.script_path,
            self.settings.home,
            service_name=descriptor.service_name,
            label=ident.systemd_name,
            log_dir=str(self.settings.log_dir),
            env_path=self.settings.env_path,
            interval=str(self.settings.daemon_interval_seconds),
        )
        return _unit_escaped(variables)


def _unit_escaped(variables: TemplateVars) -> TemplateVars:
    """Make values safe for unit files.

    Every value may land in a setting where systemd expands ``%`` specifiers,
    so ``%`` is doubled. The templates quote ``ExecStart=`` arguments and
    ``Environment=`` assignments; characters that cannot be written the same
    way in both quoted and bare settings are rejected.

    Raises:
        TemplateError: If a value contains a line break, a double quote or a
            backslash.
    """
    values = {}
    for field in dataclasses.fields(variables):
        value = getattr(variables, field.name)
        if value is None:
            continue
        if any(c in value for c in "\r\n\"\\"):
            raise TemplateError(
                f"{field.name} cannot be written to a unit file: {value!r}"
            )
        values[field.name] = value.replace("%", "%%")
    return dataclasses.replace(variables, **values)
