"""Settings management module."""

from src.commons.settings.loader import SettingsLoader, get_settings, reset_settings
from src.commons.settings.models import (
    AppSettings,
    BlobStorageSettings,
    BucketSettings,
    DocumentCollectionSettings,
    DocumentDBSettings,
    NotificationSettings,
    Settings,
    TelemetrySettings,
    WorkflowSettings,
)

__all__ = [
    # Loader
    "SettingsLoader",
    "get_settings",
    "reset_settings",
    # Main settings
    "Settings",
    "AppSettings",
    # Storage
    "BlobStorageSettings",
    "BucketSettings",
    "DocumentDBSettings",
    "DocumentCollectionSettings",
    # Workflow
    "WorkflowSettings",
    "NotificationSettings",
    # Telemetry
    "TelemetrySettings",
]
