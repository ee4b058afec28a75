"""Pytest fixtures for Checkpoint tests."""

from pathlib import Path

import pytest

from checkpoint.exceptions import ToolUnavailableError
from checkpoint.models.service import BackendKind, ServiceDescriptor, ServiceType
from checkpoint.models.settings import DaemonSettings
from checkpoint.service.detect import BackendDetector
from checkpoint.service.manager import DaemonManager
from checkpoint.service.runner import ToolResult


class FakeRunner:
    """In-memory stand-in for launchctl, systemctl --user and crontab.

    Keeps just enough state (loaded labels, active/enabled units, crontab
    text) for the drivers to observe the effects of their own calls.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.loaded: set[str] = set()
        self.active: set[str] = set()
        self.enabled: set[str] = set()
        self.crontab: str | None = None
        self.failures: dict[tuple[str, ...], ToolResult] = {}
        self.missing_tools: set[str] = set()

    def fail(self, *prefix: str, exit_code: int = 1, stderr: str = "boom") -> None:
        """Make every call starting with prefix fail."""
        self.failures[prefix] = ToolResult(exit_code, "", stderr)

    def calls_for(self, tool: str) -> list[list[str]]:
        return [call for call in self.calls if call[0] == tool]

    def run(self, args: list[str], input: str | None = None) -> ToolResult:
        self.calls.append(list(args))
        if args[0] in self.missing_tools:
            raise ToolUnavailableError(args[0])
        for prefix, result in self.failures.items():
            if tuple(args[: len(prefix)]) == prefix:
                return result

        if args[0] == "launchctl":
            return self._launchctl(args[1:])
        if args[0] == "systemctl":
            return self._systemctl(args[2:])
        if args[0] == "crontab":
            return self._crontab(args[1:], input)
        raise AssertionError(f"unexpected command: {args}")

    def _launchctl(self, args: list[str]) -> ToolResult:
        verb = args[0]
        if verb == "list":
            lines = ["PID\tStatus\tLabel"] + [f"4242\t0\t{label}" for label in sorted(self.loaded)]
            return ToolResult(0, "\n".join(lines) + "\n")
        label = Path(args[-1]).stem
        if verb == "load":
            self.loaded.add(label)
            return ToolResult(0)
        if verb == "unload":
            if label not in self.loaded:
                return ToolResult(1, "", "Could not find specified service")
            self.loaded.discard(label)
            return ToolResult(0)
        raise AssertionError(f"unexpected launchctl verb: {verb}")

    def _systemctl(self, args: list[str]) -> ToolResult:
        verb, units = args[0], args[1:]
        if verb == "daemon-reload":
            return ToolResult(0)
        if verb == "list-units":
            units = sorted(self.active | self.enabled)
            lines = [
                f"{unit} loaded {'active' if unit in self.active else 'inactive'} - Checkpoint job"
                for unit in units
            ]
            return ToolResult(0, "\n".join(lines) + "\n" if lines else "")
        unit = units[0]
        if verb == "is-active":
            if unit in self.active:
                return ToolResult(0, "active\n")
            return ToolResult(3, "inactive\n")
        if verb in ("start", "restart"):
            self.active.add(unit)
        elif verb == "stop":
            self.active.discard(unit)
        elif verb == "enable":
            self.enabled.add(unit)
        elif verb == "disable":
            self.enabled.discard(unit)
        else:
            raise AssertionError(f"unexpected systemctl verb: {verb}")
        return ToolResult(0)

    def _crontab(self, args: list[str], input: str | None) -> ToolResult:
        if args == ["-l"]:
            if self.crontab is None:
                return ToolResult(1, "", "no crontab for tester\n")
            return ToolResult(0, self.crontab)
        if args == ["-"]:
            self.crontab = input or ""
            return ToolResult(0)
        if args == ["-r"]:
            if self.crontab is None:
                return ToolResult(1, "", "no crontab for tester\n")
            self.crontab = None
            return ToolResult(0)
        raise AssertionError(f"unexpected crontab args: {args}")


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Create a temporary home directory.

    Returns:
        Path to the fake home.
    """
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def settings(home: Path) -> DaemonSettings:
    """Settings rooted at the temporary home, with no restart delay."""
    return DaemonSettings(home=home, restart_settle_seconds=0)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Create a fake native-tool runner."""
    return FakeRunner()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a project directory for descriptors to point at."""
    path = tmp_path / "projects" / "myproj"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def make_descriptor(project_dir: Path):
    """Factory for ServiceDescriptors pointing at the temp project."""

    def _make(name: str = "myproj-watcher", service_type: ServiceType = ServiceType.WATCHER):
        return ServiceDescriptor(
            service_name=name,
            script_path=Path("/opt/checkpoint/bin/backup-watcher.sh"),
            project_dir=project_dir,
            project_name="MyProj",
            service_type=service_type,
        )

    return _make


@pytest.fixture
def make_manager(settings: DaemonSettings, fake_runner: FakeRunner):
    """Factory for a DaemonManager pinned to one backend."""

    def _make(kind: BackendKind) -> DaemonManager:
        return DaemonManager(
            detector=BackendDetector(fixed=kind),
            settings=settings,
            runner=fake_runner,
        )

    return _make
