"""Service-description templates.

Templates are plain text files containing ``<KEY>_PLACEHOLDER`` tokens.
Rendering is a single pass over the text; a token whose key is not known
raises TemplateError instead of being left in the output.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from checkpoint.exceptions import TemplateError
from checkpoint.models.service import BackendKind, ServiceType

PLACEHOLDER_RE = re.compile(r"\b([A-Z][A-Z0-9_]*?)_PLACEHOLDER\b")

TEMPLATE_TABLE: dict[tuple[ServiceType, BackendKind], str] = {
    (ServiceType.WATCHER, BackendKind.LAUNCHD): "launchd-watcher.plist",
    (ServiceType.DAEMON, BackendKind.LAUNCHD): "launchd-daemon.plist",
    (ServiceType.WATCHDOG, BackendKind.LAUNCHD): "launchd-watchdog.plist",
    (ServiceType.WATCHER, BackendKind.SYSTEMD): "systemd-watcher.service",
    (ServiceType.DAEMON, BackendKind.SYSTEMD): "systemd-daemon.service",
    (ServiceType.WATCHDOG, BackendKind.SYSTEMD): "systemd-watchdog.service",
    (ServiceType.WATCHER, BackendKind.CRON): "cron-service.crontab",
    (ServiceType.DAEMON, BackendKind.CRON): "cron-service.crontab",
    (ServiceType.WATCHDOG, BackendKind.CRON): "cron-service.crontab",
}

TIMER_TEMPLATE = "systemd-daemon.timer"


@dataclass(frozen=True)
class TemplateVars:
    """Values substituted into a template.

    The first five fields are always available. The remaining ones are
    filled in by the driver that needs them; leaving one unset while the
    template references it is an error.
    """

    project_name: str
    project_dir: str
    script_path: str
    home: str
    install_dir: str
    service_name: str | None = None
    label: str | None = None
    log_dir: str | None = None
    env_path: str | None = None
    interval: str | None = None
    schedule: str | None = None

    @classmethod
    def build(
        cls,
        project_name: str,
        project_dir: Path,
        script_path: Path,
        home: Path,
        **extra: str,
    ) -> "TemplateVars":
        """Build vars, deriving INSTALL_DIR from the script location."""
        return cls(
            project_name=project_name,
            project_dir=str(project_dir),
            script_path=str(script_path),
            home=str(home),
            install_dir=str(resolve_install_dir(script_path, project_dir)),
            **extra,
        )

    def mapping(self) -> dict[str, str]:
        """Placeholder key to value, omitting unset optional fields."""
        return {
            name.upper(): value
            for name, value in self.__dict__.items()
            if value is not None
        }


def resolve_install_dir(script_path: Path, project_dir: Path) -> Path:
    """Return the install root two levels above the script (``<root>/bin/x.sh``).

    Falls back to project_dir when that directory does not exist.
    """
    candidate = script_path.parent.parent
    if candidate.is_dir():
        return candidate.resolve()
    return project_dir


def find_template(
    service_type: ServiceType, backend: BackendKind, template_dir: Path
) -> Path | None:
    """Locate the template for a (service_type, backend) pair.

    Returns:
        Path to the template, or None if the pair is unmapped or the file
        is missing from template_dir.
    """
    name = TEMPLATE_TABLE.get((service_type, backend))
    if name is None:
        return None
    path = template_dir / name
    return path if path.is_file() else None


def find_timer_template(template_dir: Path) -> Path | None:
    """Locate the systemd timer template paired with daemon services."""
    path = template_dir / TIMER_TEMPLATE
    return path if path.is_file() else None


def placeholders(text: str) -> set[str]:
    """Return the placeholder keys referenced by a template."""
    return set(PLACEHOLDER_RE.findall(text))


def render_text(text: str, variables: TemplateVars) -> str:
    """Substitute every placeholder in text.

    Raises:
        TemplateError: If text references a key that variables do not define.
    """
    values = variables.mapping()
    unknown = placeholders(text) - values.keys()
    if unknown:
        names = ", ".join(f"{key}_PLACEHOLDER" for key in sorted(unknown))
        raise TemplateError(f"Template references unknown placeholder(s): {names}")
    return PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], text)


def render(template: Path, variables: TemplateVars) -> str:
    """Read and render a template file.

    Raises:
        TemplateError: If the file cannot be read or has unknown placeholders.
    """
    try:
        text = template.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateError(f"Cannot read template {template}: {e}") from e
    try:
        return render_text(text, variables)
    except TemplateError as e:
        raise TemplateError(f"{template.name}: {e}") from e
