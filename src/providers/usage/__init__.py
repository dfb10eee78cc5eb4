"""Usage telemetry adapters."""

from src.providers.usage.sqlite_usage_recorder import SQLiteUsageRecorder

__all__ = ["SQLiteUsageRecorder"]
