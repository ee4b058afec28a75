"""macOS launchd (per-user launch agent) service manager."""

from __future__ import annotations

import dataclasses
import logging
import plistlib
import time
from pathlib import Path
from typing import Any
from xml.parsers.expat import ExpatError
from xml.sax.saxutils import escape

from checkpoint.exceptions import InstallFailedError, TemplateError, ToggleFailedError
from checkpoint.models.service import BackendKind, ServiceDescriptor, ServiceStatus, ServiceType
from checkpoint.service.base import ServiceManager
from checkpoint.service.identity import LAUNCHD_LEGACY_PREFIX, LAUNCHD_PREFIX, ServiceIdentity
from checkpoint.service.templates import TemplateVars, find_template, render
from checkpoint.utils.files import write_atomic

logger = logging.getLogger(__name__)


class LaunchdServiceManager(ServiceManager):
    """macOS launchd service manager."""

    kind = BackendKind.LAUNCHD

    @property
    def agents_dir(self) -> Path:
        return self.settings.launch_agents_dir

    def install(self, descriptor: ServiceDescriptor) -> bool:
        """Install the service as a launch agent and load it.

        Any agent already installed under either naming scheme is unloaded
        first; a legacy plist is removed so only the current one remains.

        Returns:
            True if ``launchctl load -w`` succeeded. The plist stays on disk
            either way so a later start can retry.
        """
        ident = ServiceIdentity(descriptor.service_name)
        plist_path = ident.plist_path(self.agents_dir)

        # Ensure directories exist
        self.agents_dir.mkdir(parents=True, exist_ok=True)
        self.settings.log_dir.mkdir(parents=True, exist_ok=True)

        # Unload existing if present (handles both new and legacy naming)
        for existing in ident.plist_paths(self.agents_dir):
            if existing.is_file():
                self._run("launchctl", "unload", str(existing))
                if existing != plist_path:
                    existing.unlink(missing_ok=True)

        plist = self._build_plist(descriptor, ident)

        try:
            write_atomic(plist_path, plistlib.dumps(plist))
        except OSError as e:
            raise InstallFailedError(f"Cannot write {plist_path}: {e}") from e

        # Load the agent and persist the enabled state across reboots
        result = self._run("launchctl", "load", "-w", str(plist_path))
        if result.ok:
            logger.info("Installed launchd agent: %s", ident.launchd_label)
        return result.ok

    def uninstall(self, service_name: str) -> bool:
        """Unload and delete the agent under both naming schemes."""
        ident = ServiceIdentity(service_name)
        existing = [p for p in ident.plist_paths(self.agents_dir) if p.is_file()]
        if not existing:
            logger.debug("No launchd agent for %s, nothing to uninstall", service_name)
            return True

        for path in existing:
            self._run("launchctl", "unload", str(path))
            path.unlink(missing_ok=True)

        logger.info("Uninstalled launchd agent: %s", service_name)
        return True

    def start(self, service_name: str) -> bool:
        plist_path = self._locate(service_name, "start")
        return self._run("launchctl", "load", "-w", str(plist_path)).ok

    def stop(self, service_name: str) -> bool:
        plist_path = self._locate(service_name, "stop")
        return self._run("launchctl", "unload", str(plist_path)).ok

    def restart(self, service_name: str) -> bool:
        """Unload, wait for launchd to settle, then load again."""
        plist_path = self._locate(service_name, "restart")
        self._run("launchctl", "unload", str(plist_path))
        if self.settings.restart_settle_seconds:
            time.sleep(self.settings.restart_settle_seconds)
        return self._run("launchctl", "load", "-w", str(plist_path)).ok

    def status(self, service_name: str) -> ServiceStatus:
        """Report running when either label is in ``launchctl list``."""
        ident = ServiceIdentity(service_name)
        loaded = self._loaded_labels()
        if any(label in loaded for label in ident.launchd_labels):
            return ServiceStatus.RUNNING
        return ServiceStatus.STOPPED

    def list(self, pattern: str) -> list[str]:
        result = self._run("launchctl", "list")
        if not result.ok:
            return []
        return self._filter(result.stdout.splitlines(), pattern)

    def artifacts(self, service_name: str) -> list[Path | str]:
        ident = ServiceIdentity(service_name)
        return [p for p in ident.plist_paths(self.agents_dir) if p.is_file()]

    def installed_names(self) -> list[str]:
        names: list[str] = []
        for prefix in (LAUNCHD_PREFIX, LAUNCHD_LEGACY_PREFIX):
            for path in sorted(self.agents_dir.glob(f"{prefix}*.plist")):
                name = path.name[len(prefix) : -len(".plist")]
                if name and name not in names:
                    names.append(name)
        return names

    def _locate(self, service_name: str, action: str) -> Path:
        plist_path = ServiceIdentity(service_name).find_plist(self.agents_dir)
        if plist_path is None:
            raise ToggleFailedError(service_name, action)
        return plist_path

    def _loaded_labels(self) -> set[str]:
        """Labels from ``launchctl list`` (columns: PID, Status, Label)."""
        result = self._run("launchctl", "list")
        if not result.ok:
            return set()
        labels = set()
        for line in result.stdout.splitlines():
            parts = line.split()
            if parts:
                labels.add(parts[-1])
        return labels

    def _build_plist(self, descriptor: ServiceDescriptor, ident: ServiceIdentity) -> dict[str, Any]:
        template = find_template(descriptor.service_type, self.kind, self.settings.template_dir)

        if template is not None:
            variables = self._template_vars(descriptor, ident)
            text = render(template, _xml_escaped(variables))
            try:
                plist = plistlib.loads(text.encode("utf-8"))
            except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
                raise TemplateError(f"{template.name} did not render to a valid plist: {e}") from e
            if not isinstance(plist, dict):
                raise TemplateError(f"{template.name} must render to a plist dictionary")
        elif descriptor.service_type is ServiceType.DAEMON:
            plist = self._inline_daemon_plist(descriptor, ident)
        else:
            raise InstallFailedError(
                f"No launchd template for service type '{descriptor.service_type.value}' "
                f"in {self.settings.template_dir}"
            )

        # Launch agents do not inherit the login shell's PATH
        plist["Label"] = ident.launchd_label
        env = plist.setdefault("EnvironmentVariables", {})
        if not isinstance(env, dict):
            raise TemplateError("EnvironmentVariables must be a plist dictionary")
        env.setdefault("PATH", self.settings.env_path)
        return plist

    def _inline_daemon_plist(
        self, descriptor: ServiceDescriptor, ident: ServiceIdentity
    ) -> dict[str, Any]:
        log_dir = self.settings.log_dir
        return {
            "Label": ident.launchd_label,
            "ProgramArguments": [str(descriptor.script_path)],
            "WorkingDirectory": str(descriptor.project_dir),
            "StartInterval": self.settings.daemon_interval_seconds,
            "RunAtLoad": True,
            "StandardOutPath": str(log_dir / f"{descriptor.service_name}.out"),
            "StandardErrorPath": str(log_dir / f"{descriptor.service_name}.err"),
            "EnvironmentVariables": {"PATH": self.settings.env_path},
        }

    def _template_vars(self, descriptor: ServiceDescriptor, ident: ServiceIdentity) -> TemplateVars:
        return TemplateVars.build(
            descriptor.project_name,
            descriptor.project_dir,
            descriptor.script_path,
            self.settings.home,
            service_name=descriptor.service_name,
            label=ident.launchd_label,
            log_dir=str(self.settings.log_dir),
            env_path=self.settings.env_path,
            interval=str(self.settings.daemon_interval_seconds),
        )


def _xml_escaped(variables: TemplateVars) -> TemplateVars:
    values = {
        field.name: escape(value)
        for field in dataclasses.fields(variables)
        if (value := getattr(variables, field.name)) is not None
    }
    return dataclasses.replace(variables, **values)
