"""
Core module - shared functionality for the pipeline service.

Provides:
- Configuration management
- Database connection and session handling
- Record store backends (SQL, Firestore)
- Pipeline stages, change feed and orchestrator
"""

from vidqa.core.config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
