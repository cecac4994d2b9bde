"""
SQLAlchemy models for the Version Registry.

Enum-valued columns store the string labels of the enums in
``version_registry.enums``; the service layer converts at the boundary.
"""

from typing import Any, Dict

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from ..enums import (
    ArtifactKind,
    ArtifactTrack,
    AuditAction,
    DraftChannel,
    DraftStatus,
    JobPriority,
    JobStatus,
    VersionStatus,
    enum_values,
)
from .base import Base


version_status_enum = Enum(*enum_values(VersionStatus), name="version_status")
artifact_kind_enum = Enum(*enum_values(ArtifactKind), name="artifact_kind")
artifact_track_enum = Enum(*enum_values(ArtifactTrack), name="artifact_track")
draft_channel_enum = Enum(*enum_values(DraftChannel), name="draft_channel")
draft_status_enum = Enum(*enum_values(DraftStatus), name="draft_status")
audit_action_enum = Enum(*enum_values(AuditAction), name="audit_action")


def _iso(value) -> Any:
    return value.isoformat() if value else None


class VersionModel(Base):
    """A registered release version and its current lifecycle status."""

    __tablename__ = "versions"

    id = Column(String(36), primary_key=True)
    client = Column(String(200), nullable=False, index=True)
    product = Column(String(200), nullable=False, index=True)
    version_string = Column(String(50), nullable=False)
    build_date = Column(String(8), nullable=False)

    status = Column(
        version_status_enum,
        nullable=False,
        default=VersionStatus.DRAFT.value,
        index=True,
    )

    responsible = Column(String(128), nullable=False)
    branch = Column(String(128), nullable=True)
    release_notes_path = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "client",
            "product",
            "version_string",
            "build_date",
            name="uq_versions_identity",
        ),
        Index("ix_versions_created_at", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "client": self.client,
            "product": self.product,
            "version_string": self.version_string,
            "build_date": self.build_date,
            "status": self.status,
            "responsible": self.responsible,
            "branch": self.branch,
            "release_notes_path": self.release_notes_path,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ArtifactModel(Base):
    """A build artifact attached to a version. Rows are never updated."""

    __tablename__ = "artifacts"

    id = Column(String(36), primary_key=True)
    version_id = Column(
        String(36), ForeignKey("versions.id"), nullable=False, index=True
    )
    kind = Column(artifact_kind_enum, nullable=False)
    track = Column(artifact_track_enum, nullable=False)

    original_name = Column(String(512), nullable=False)
    final_name = Column(String(512), nullable=True)
    dest_path = Column(String(1024), nullable=True)
    size_bytes = Column(BigInteger, nullable=True)
    checksum = Column(String(128), nullable=True)
    uploaded_url = Column(String(2000), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_artifacts_version_kind_track", "version_id", "kind", "track"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "version_id": self.version_id,
            "kind": self.kind,
            "track": self.track,
            "original_name": self.original_name,
            "final_name": self.final_name,
            "dest_path": self.dest_path,
            "size_bytes": self.size_bytes,
            "checksum": self.checksum,
            "uploaded_url": self.uploaded_url,
            "created_at": _iso(self.created_at),
        }


class JobModel(Base):
    """A deduplicated work item. No consumer advances these rows yet."""

    __tablename__ = "job_queue"

    id = Column(String(36), primary_key=True)
    version_id = Column(
        String(36), ForeignKey("versions.id"), nullable=False, index=True
    )
    job_type = Column(String(64), nullable=False, index=True)

    # Globally unique; the constraint is what makes enqueue idempotent
    idempotency_key = Column(String(256), nullable=False, unique=True)

    payload = Column(JSON, nullable=True)
    status = Column(
        String(20), nullable=False, default=JobStatus.PENDING.value, index=True
    )
    priority = Column(String(20), nullable=False, default=JobPriority.NORMAL.value)
    attempt = Column(Integer, nullable=False, default=0)
    output = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_job_queue_status_priority", "status", "priority"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "version_id": self.version_id,
            "job_type": self.job_type,
            "idempotency_key": self.idempotency_key,
            "payload": self.payload,
            "status": self.status,
            "priority": self.priority,
            "attempt": self.attempt,
            "output": self.output,
            "error": self.error,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class DraftModel(Base):
    """A publication notice prepared for dispatch over a messaging channel."""

    __tablename__ = "drafts"

    id = Column(String(36), primary_key=True)
    version_id = Column(
        String(36), ForeignKey("versions.id"), nullable=False, index=True
    )
    channel = Column(draft_channel_enum, nullable=False)
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    thread_id = Column(String(256), nullable=True)
    status = Column(
        draft_status_enum, nullable=False, default=DraftStatus.DRAFT.value
    )
    evidence_path = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "version_id": self.version_id,
            "channel": self.channel,
            "subject": self.subject,
            "body": self.body,
            "thread_id": self.thread_id,
            "status": self.status,
            "evidence_path": self.evidence_path,
            "created_at": _iso(self.created_at),
        }


class AuditEventModel(Base):
    """Append-only record of one state-changing lifecycle action.

    ``sequence`` is allocated per version and breaks ties between events
    that share a timestamp.
    """

    __tablename__ = "audit_events"

    id = Column(String(36), primary_key=True)
    version_id = Column(
        String(36), ForeignKey("versions.id"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    action = Column(audit_action_enum, nullable=False, index=True)
    actor = Column(String(128), nullable=False, index=True)
    origin = Column(String(255), nullable=True)
    detail = Column(Text, nullable=True)
    ts = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("version_id", "sequence", name="uq_audit_events_sequence"),
        Index("ix_audit_events_version_ts", "version_id", "ts", "sequence"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "version_id": self.version_id,
            "sequence": self.sequence,
            "action": self.action,
            "actor": self.actor,
            "origin": self.origin,
            "detail": self.detail,
            "ts": _iso(self.ts),
        }
