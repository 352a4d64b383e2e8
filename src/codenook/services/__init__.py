"""Service layer helpers (settings, completion worker)."""

from .completion_worker import CompletionWorker, CompletionWorkerConfig
from .settings import CompletionSettings, SecretVault, Settings, SettingsStore, redact_secret

__all__ = [
    "CompletionSettings",
    "CompletionWorker",
    "CompletionWorkerConfig",
    "SecretVault",
    "Settings",
    "SettingsStore",
    "redact_secret",
]
