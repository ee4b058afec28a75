"""Backend-specific identifiers for a logical service name."""

import re
from dataclasses import dataclass
from pathlib import Path

from checkpoint.exceptions import ParseFailedError
from checkpoint.models.service import BackendKind

LAUNCHD_PREFIX = "com.checkpoint."
LAUNCHD_LEGACY_PREFIX = "com.claudecode.backup."
SYSTEMD_PREFIX = "checkpoint-"
CRON_MARKER_PREFIX = "# checkpoint:"

# Listing patterns matching current and legacy artifacts
CURRENT_PATTERN = "checkpoint"
LEGACY_PATTERN = "claudecode"

_CRON_RE = re.compile(r"#\s*checkpoint:(\S+)\s*$")
_LAUNCHD_RE = re.compile(r"(?<![\w.])com\.checkpoint\.(\S+)")
_LAUNCHD_LEGACY_RE = re.compile(r"(?<![\w.])com\.claudecode\.backup\.(\S+)")
_SYSTEMD_RE = re.compile(r"(?<![\w.-])checkpoint-(\S+?)(?:\.service|\.timer)?(?=\s|$)")

# Listing shapes each backend can produce, in match order
_LISTING_SHAPES = {
    BackendKind.LAUNCHD: (_LAUNCHD_RE, _LAUNCHD_LEGACY_RE),
    BackendKind.SYSTEMD: (_SYSTEMD_RE,),
    BackendKind.CRON: (_CRON_RE,),
}


@dataclass(frozen=True)
class ServiceIdentity:
    """All names one logical service can go by."""

    service_name: str

    @property
    def launchd_label(self) -> str:
        return f"{LAUNCHD_PREFIX}{self.service_name}"

    @property
    def launchd_legacy_label(self) -> str:
        return f"{LAUNCHD_LEGACY_PREFIX}{self.service_name}"

    @property
    def launchd_labels(self) -> tuple[str, str]:
        """Current label first, then legacy."""
        return (self.launchd_label, self.launchd_legacy_label)

    @property
    def systemd_name(self) -> str:
        return f"{SYSTEMD_PREFIX}{self.service_name}"

    @property
    def systemd_service(self) -> str:
        return f"{self.systemd_name}.service"

    @property
    def systemd_timer(self) -> str:
        return f"{self.systemd_name}.timer"

    @property
    def cron_marker(self) -> str:
        return f"{CRON_MARKER_PREFIX}{self.service_name}"

    def plist_path(self, agents_dir: Path, legacy: bool = False) -> Path:
        label = self.launchd_legacy_label if legacy else self.launchd_label
        return agents_dir / f"{label}.plist"

    def plist_paths(self, agents_dir: Path) -> tuple[Path, Path]:
        return (self.plist_path(agents_dir), self.plist_path(agents_dir, legacy=True))

    def find_plist(self, agents_dir: Path) -> Path | None:
        """Locate the installed plist, preferring the current naming.

        Returns the legacy plist when it is the only one present, so agents
        installed by earlier versions stay controllable. New installs always
        write ``plist_path(agents_dir)``.
        """
        for path in self.plist_paths(agents_dir):
            if path.is_file():
                return path
        return None

    def service_path(self, unit_dir: Path) -> Path:
        return unit_dir / self.systemd_service

    def timer_path(self, unit_dir: Path) -> Path:
        return unit_dir / self.systemd_timer

    def owns_cron_line(self, line: str) -> bool:
        """True if a crontab line carries this service's marker."""
        return line.rstrip().endswith(self.cron_marker)


def cron_marker_name(line: str) -> str | None:
    """Return the service name from a trailing ``# checkpoint:NAME`` marker."""
    match = _CRON_RE.search(line)
    return match.group(1) if match else None


def parse_service_name(line: str, backend: BackendKind | None = None) -> str:
    """Extract the logical service name from one backend listing line.

    Recognizes ``# checkpoint:NAME`` (cron), ``com.checkpoint.NAME`` and
    ``com.claudecode.backup.NAME`` (launchd), and ``checkpoint-NAME[.service|.timer]``
    (systemd). With ``backend`` set only that backend's shapes are tried, so a
    crontab command mentioning ``checkpoint-foo`` is not read as a unit name.
    Otherwise the cron marker is tried first because crontab commands often
    contain paths like ``checkpoint-watchdog.sh``.

    Raises:
        ParseFailedError: If the line matches none of the shapes.
    """
    if backend is None:
        patterns = (_CRON_RE, _LAUNCHD_RE, _LAUNCHD_LEGACY_RE, _SYSTEMD_RE)
    else:
        patterns = _LISTING_SHAPES[backend]
    for pattern in patterns:
        match = pattern.search(line)
        if match:
            return match.group(1)
    raise ParseFailedError(line)
