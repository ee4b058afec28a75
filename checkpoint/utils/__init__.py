"""Utility functions."""

from checkpoint.utils.files import write_atomic
from checkpoint.utils.process import is_process_running, read_pid, running_pid, terminate_process

__all__ = ["is_process_running", "read_pid", "running_pid", "terminate_process", "write_atomic"]
