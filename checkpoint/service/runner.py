"""Narrow port for invoking native service-management tools."""

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from checkpoint.exceptions import ToolTimeoutError, ToolUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ToolResult:
    """Structured outcome of one tool invocation."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def message(self) -> str:
        """Best single-line description of a failure."""
        return (self.stderr or self.stdout).strip()


class CommandRunner(Protocol):
    """Anything that can execute an argv and report the result."""

    def run(self, args: list[str], input: str | None = None) -> ToolResult: ...


class SubprocessRunner:
    """CommandRunner backed by subprocess.run with a bounded timeout."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def run(self, args: list[str], input: str | None = None) -> ToolResult:
        """Run a tool and capture its output.

        Args:
            args: Command and arguments.
            input: Optional text fed to stdin.

        Returns:
            ToolResult with exit code, stdout and stderr.

        Raises:
            ToolUnavailableError: If the executable cannot be found or run.
            ToolTimeoutError: If the tool exceeds the timeout.
        """
        logger.debug("exec: %s", " ".join(args))
        try:
            proc = subprocess.run(
                args,
                input=input,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ToolUnavailableError(args[0]) from e
        except PermissionError as e:
            raise ToolUnavailableError(args[0]) from e
        except subprocess.TimeoutExpired as e:
            raise ToolTimeoutError(args[0], self.timeout) from e

        return ToolResult(proc.returncode, proc.stdout or "", proc.stderr or "")
