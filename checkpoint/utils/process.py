"""PID-file helpers for jobs scheduled without a process supervisor."""

import logging
import os
import signal
from pathlib import Path

logger = logging.getLogger(__name__)


def read_pid(pid_file: Path) -> int | None:
    """Read a PID file.

    Returns:
        The PID, or None if the file is missing or malformed.
    """
    try:
        pid = int(pid_file.read_text().strip())
    except (OSError, ValueError):
        return None
    return pid if pid > 0 else None


def is_process_running(pid: int) -> bool:
    """Check if a process with the given PID is running."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to someone else
        return True
    return True


def terminate_process(pid: int) -> bool:
    """Send SIGTERM to a process.

    Returns:
        True if the signal was delivered.
    """
    try:
        os.kill(pid, signal.SIGTERM)
    except (ProcessLookupError, PermissionError) as e:
        logger.debug("SIGTERM %d failed: %s", pid, e)
        return False
    return True


def running_pid(pid_file: Path) -> int | None:
    """Return the PID recorded in pid_file if that process is alive."""
    pid = read_pid(pid_file)
    if pid is not None and is_process_running(pid):
        return pid
    return None
