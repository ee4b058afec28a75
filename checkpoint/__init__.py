"""Checkpoint - backup automation for developer machines."""

__version__ = "0.1.0"
