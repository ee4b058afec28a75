"""Custom exceptions for Checkpoint."""


class CheckpointError(Exception):
    """Base exception for Checkpoint errors."""

    pass


class ConfigError(CheckpointError):
    """Raised when the configuration file is missing or invalid."""

    pass


class ToolUnavailableError(CheckpointError):
    """Raised when a native service-management tool cannot be executed."""

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"Required tool not available: {tool}")


class ToolTimeoutError(CheckpointError):
    """Raised when a native tool does not finish within the timeout."""

    def __init__(self, tool: str, timeout: float) -> None:
        self.tool = tool
        self.timeout = timeout
        super().__init__(f"{tool} did not finish within {timeout:g}s")


class InstallFailedError(CheckpointError):
    """Raised when a service artifact cannot be produced."""

    pass


class TemplateError(InstallFailedError):
    """Raised when a template cannot be read or references an unknown placeholder."""

    pass


class ToggleFailedError(CheckpointError):
    """Raised when start/stop/restart targets a service that is not installed."""

    def __init__(self, service_name: str, action: str) -> None:
        self.service_name = service_name
        self.action = action
        super().__init__(f"Cannot {action} '{service_name}': service is not installed")


class ParseFailedError(CheckpointError):
    """Raised when a listing line does not match any known service shape."""

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"Unrecognized service listing line: {line!r}")
