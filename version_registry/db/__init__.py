"""
Database package for the Version Registry.
"""

from .audit_service import AuditTrail
from .base import Base, get_db, get_engine, get_session_local, init_database
from .models import (
    ArtifactModel,
    AuditEventModel,
    DraftModel,
    JobModel,
    VersionModel,
)
from .services import ArtifactStore, DraftStore, JobQueue, VersionStore

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
    "ArtifactModel",
    "AuditEventModel",
    "DraftModel",
    "JobModel",
    "VersionModel",
    "ArtifactStore",
    "AuditTrail",
    "DraftStore",
    "JobQueue",
    "VersionStore",
]
