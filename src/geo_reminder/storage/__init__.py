from .settings_store import JsonSettingsStore

__all__ = ["JsonSettingsStore"]
