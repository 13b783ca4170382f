"""
Infrastructure layer for external integrations.

This module contains the PostgreSQL client used by every repository.
"""

from .database_client import DatabaseClient

__all__ = ["DatabaseClient"]
