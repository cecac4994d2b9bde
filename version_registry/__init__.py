"""
Version Registry

Lifecycle tracking for client release versions: registration, artifact
attachment, validation and publication with an append-only audit trail.
"""

import importlib.metadata

__version__ = importlib.metadata.version("version-registry")

from .enums import (
    ArtifactKind,
    ArtifactTrack,
    AuditAction,
    JobType,
    VersionStatus,
)
from .errors import ErrorCode, LifecycleError, LifecycleFailure, LifecycleResult
from .lifecycle.orchestrator import LifecycleOrchestrator, build_orchestrator

__all__ = [
    "ArtifactKind",
    "ArtifactTrack",
    "AuditAction",
    "ErrorCode",
    "JobType",
    "LifecycleError",
    "LifecycleFailure",
    "LifecycleOrchestrator",
    "LifecycleResult",
    "VersionStatus",
    "build_orchestrator",
]
