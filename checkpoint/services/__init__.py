"""Supporting services."""

from checkpoint.services.settings import SettingsService

__all__ = ["SettingsService"]
