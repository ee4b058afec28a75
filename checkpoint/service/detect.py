"""Host service-manager detection."""

import logging
import os
import platform
from collections.abc import Callable
from pathlib import Path

from checkpoint.models.service import BackendKind

logger = logging.getLogger(__name__)

# Present only while systemd is the running init system
SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")
INIT_EXE = Path("/proc/1/exe")


class BackendDetector:
    """Classify the host into a BackendKind, probing at most once.

    Tests construct one with ``fixed=`` to pin the backend without looking at
    the real host.
    """

    def __init__(
        self,
        fixed: BackendKind | None = None,
        system: Callable[[], str] = platform.system,
        runtime_dir: Path = SYSTEMD_RUNTIME_DIR,
        init_exe: Path = INIT_EXE,
    ) -> None:
        self._kind = fixed
        self._system = system
        self._runtime_dir = runtime_dir
        self._init_exe = init_exe

    def detect(self) -> BackendKind:
        """Return the backend for this host (cached after the first call)."""
        if self._kind is None:
            self._kind = self._probe()
            logger.debug("Detected service backend: %s", self._kind.value)
        return self._kind

    def _probe(self) -> BackendKind:
        if self._system() == "Darwin":
            return BackendKind.LAUNCHD
        if self._runtime_dir.is_dir():
            return BackendKind.SYSTEMD
        if "systemd" in self._init_target():
            return BackendKind.SYSTEMD
        return BackendKind.CRON

    def _init_target(self) -> str:
        try:
            return os.readlink(self._init_exe)
        except OSError:
            # Not a symlink (or unreadable without privileges)
            try:
                return str(self._init_exe.resolve(strict=True))
            except OSError:
                return ""


_default_detector = BackendDetector()


def detect() -> BackendKind:
    """Detect the backend for the current process."""
    return _default_detector.detect()
