"""Pydantic data models."""

from checkpoint.models.service import BackendKind, ServiceDescriptor, ServiceStatus, ServiceType
from checkpoint.models.settings import DaemonSettings

__all__ = ["BackendKind", "DaemonSettings", "ServiceDescriptor", "ServiceStatus", "ServiceType"]
