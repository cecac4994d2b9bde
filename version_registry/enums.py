"""
Closed vocabularies for the version lifecycle.

Internally every field below is one of these enums; the string values are
the labels persisted at the storage boundary.
"""

from enum import Enum


class VersionStatus(str, Enum):
    """Forward-only lifecycle stage of a version."""

    DRAFT = "Draft"
    READY = "Ready"
    PUBLISHED = "Published"


class ArtifactKind(str, Enum):
    """Kinds of build artifacts that can be attached to a version."""

    BINARY = "binary"
    PACKAGE = "package"
    DOCUMENT = "document"


class ArtifactTrack(str, Enum):
    """Parallel artifact lineages a release must supply independently."""

    BASE = "base"
    INCREMENT = "increment"


class JobType(str, Enum):
    """Job types enqueued by the publish transition."""

    COPY_ARTIFACTS = "COPY_ARTIFACTS"
    COMPUTE_MD5 = "COMPUTE_MD5"
    GEN_OUTBOX = "GEN_OUTBOX"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"


class JobPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class DraftChannel(str, Enum):
    """Messaging channels a publication notice can be drafted for."""

    OUTBOX = "outbox"
    OUTLOOK = "outlook"
    TEAMS = "teams"


class DraftStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    FAILED = "FAILED"


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""

    VERSION_REGISTERED = "version_registered"
    ARTIFACT_ATTACHED = "artifact_attached"
    VERSION_VALIDATED = "version_validated"
    VERSION_PUBLISHED = "version_published"


# Statuses in which artifacts may still be attached
ATTACHABLE_STATUSES = frozenset({VersionStatus.DRAFT, VersionStatus.READY})


def enum_values(enum_cls) -> list:
    """Return the storage labels of an enum, in declaration order."""
    return [member.value for member in enum_cls]
