"""Service management for Checkpoint background jobs.

Provides one interface over the per-user service managers:
- launchd on macOS
- systemd on Linux
- cron everywhere else
"""

from checkpoint.service.base import ServiceManager, get_service_manager
from checkpoint.service.detect import BackendDetector, detect
from checkpoint.service.identity import ServiceIdentity, parse_service_name
from checkpoint.service.manager import DaemonManager
from checkpoint.service.runner import CommandRunner, SubprocessRunner, ToolResult

__all__ = [
    "BackendDetector",
    "CommandRunner",
    "DaemonManager",
    "ServiceIdentity",
    "ServiceManager",
    "SubprocessRunner",
    "ToolResult",
    "detect",
    "get_service_manager",
    "parse_service_name",
]
