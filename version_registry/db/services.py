"""
Database services for the Version Registry.

Each service wraps one table and works inside the caller's session: nothing
here commits. The unit of work that owns the session decides whether the
writes are kept.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..enums import (
    DraftChannel,
    DraftStatus,
    JobPriority,
    JobStatus,
    VersionStatus,
)
from ..primitives import generate_ulid
from .models import ArtifactModel, DraftModel, JobModel, VersionModel

# Dialects with native INSERT ... ON CONFLICT DO NOTHING
_UPSERT_DIALECTS = {"sqlite": sqlite, "postgresql": postgresql}


class VersionStore:
    """Service for managing versions in the database."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        client: str,
        product: str,
        version_string: str,
        build_date: str,
        responsible: str,
        now: datetime,
        branch: Optional[str] = None,
    ) -> VersionModel:
        """Insert a new version in Draft status.

        Raises:
            IntegrityError: If the identity tuple is already taken
        """
        db_version = VersionModel(
            id=generate_ulid(),
            client=client,
            product=product,
            version_string=version_string,
            build_date=build_date,
            status=VersionStatus.DRAFT.value,
            responsible=responsible,
            branch=branch,
            created_at=now,
            updated_at=now,
        )

        self.db.add(db_version)
        self.db.flush()
        return db_version

    def get(self, version_id: str) -> Optional[VersionModel]:
        """Get a version by ID."""
        return self.db.query(VersionModel).filter(VersionModel.id == version_id).first()

    def get_for_update(self, version_id: str) -> Optional[VersionModel]:
        """Get a version by ID, locking its row until the transaction ends.

        SQLite ignores FOR UPDATE; transitions stay safe there through the
        status guard in ``transition``.
        """
        return (
            self.db.query(VersionModel)
            .filter(VersionModel.id == version_id)
            .with_for_update()
            .first()
        )

    def exists(
        self, client: str, product: str, version_string: str, build_date: str
    ) -> bool:
        """Check whether a version with this identity tuple is registered."""
        return (
            self.db.query(VersionModel.id)
            .filter(
                VersionModel.client == client,
                VersionModel.product == product,
                VersionModel.version_string == version_string,
                VersionModel.build_date == build_date,
            )
            .first()
            is not None
        )

    def list(
        self,
        client: Optional[str] = None,
        product: Optional[str] = None,
        status: Optional[VersionStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[VersionModel]:
        """List versions with optional filtering, newest first."""
        query = self.db.query(VersionModel)

        if client:
            query = query.filter(VersionModel.client == client)
        if product:
            query = query.filter(VersionModel.product == product)
        if status:
            query = query.filter(VersionModel.status == status.value)

        return (
            query.order_by(desc(VersionModel.created_at), desc(VersionModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def transition(
        self,
        version_id: str,
        expected: VersionStatus,
        target: VersionStatus,
        now: datetime,
        **values: Any,
    ) -> bool:
        """Move a version from ``expected`` to ``target`` status.

        The status check is part of the UPDATE itself, so of two concurrent
        callers only one can match the row.

        Returns:
            True if this call performed the transition, False if the version
            was no longer in ``expected`` status
        """
        result = self.db.execute(
            update(VersionModel)
            .where(
                VersionModel.id == version_id,
                VersionModel.status == expected.value,
            )
            .values(status=target.value, updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class ArtifactStore:
    """Service for managing artifacts in the database."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, version_id: str, now: datetime, **fields: Any) -> ArtifactModel:
        """Insert an artifact for a version.

        ``fields`` holds the artifact columns (kind, track, original_name, ...),
        with enum values already converted to their labels.
        """
        db_artifact = ArtifactModel(
            id=generate_ulid(),
            version_id=version_id,
            created_at=now,
            **fields,
        )

        self.db.add(db_artifact)
        self.db.flush()
        return db_artifact

    def list_for_version(self, version_id: str) -> List[ArtifactModel]:
        """List artifacts attached to a version, in attach order."""
        return (
            self.db.query(ArtifactModel)
            .filter(ArtifactModel.version_id == version_id)
            .order_by(ArtifactModel.created_at, ArtifactModel.id)
            .all()
        )


class JobQueue:
    """Service for enqueueing deduplicated jobs.

    The unique index on ``idempotency_key`` is the source of truth: a second
    enqueue with the same key is dropped by the database, not by a prior
    lookup, so racing callers cannot both insert.
    """

    def __init__(self, db: Session):
        self.db = db

    def enqueue(
        self,
        version_id: str,
        job_type: str,
        idempotency_key: str,
        now: datetime,
        priority: JobPriority = JobPriority.NORMAL,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Enqueue a job unless one with the same key already exists.

        Returns:
            True if a row was inserted, False if the key was already taken
        """
        row = {
            "id": generate_ulid(),
            "version_id": version_id,
            "job_type": job_type,
            "idempotency_key": idempotency_key,
            "payload": payload,
            "status": JobStatus.PENDING.value,
            "priority": priority.value,
            "attempt": 0,
            "created_at": now,
            "updated_at": now,
        }

        dialect = self.db.get_bind().dialect.name
        if dialect in _UPSERT_DIALECTS:
            stmt = (
                _UPSERT_DIALECTS[dialect].insert(JobModel.__table__)
                .values(**row)
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
            )
            return self.db.execute(stmt).rowcount == 1

        # Other backends: let the unique constraint reject the duplicate
        # inside a savepoint so the outer transaction survives.
        try:
            with self.db.begin_nested():
                self.db.add(JobModel(**row))
        except IntegrityError:
            if self.get_by_key(idempotency_key) is None:
                raise
            return False
        return True

    def get_by_key(self, idempotency_key: str) -> Optional[JobModel]:
        """Get a job by idempotency key."""
        return (
            self.db.query(JobModel)
            .filter(JobModel.idempotency_key == idempotency_key)
            .first()
        )

    def list_for_version(self, version_id: str) -> List[JobModel]:
        """List jobs enqueued for a version, in enqueue order."""
        return (
            self.db.query(JobModel)
            .filter(JobModel.version_id == version_id)
            .order_by(JobModel.created_at, JobModel.id)
            .all()
        )


class DraftStore:
    """Service for managing publication drafts in the database."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        version_id: str,
        subject: str,
        body: str,
        now: datetime,
        channel: DraftChannel = DraftChannel.OUTBOX,
        thread_id: Optional[str] = None,
        evidence_path: Optional[str] = None,
    ) -> DraftModel:
        """Insert a draft in DRAFT status."""
        db_draft = DraftModel(
            id=generate_ulid(),
            version_id=version_id,
            channel=channel.value,
            subject=subject,
            body=body,
            thread_id=thread_id,
            status=DraftStatus.DRAFT.value,
            evidence_path=evidence_path,
            created_at=now,
        )

        self.db.add(db_draft)
        self.db.flush()
        return db_draft

    def list_for_version(self, version_id: str) -> List[DraftModel]:
        """List drafts generated for a version."""
        return (
            self.db.query(DraftModel)
            .filter(DraftModel.version_id == version_id)
            .order_by(DraftModel.created_at, DraftModel.id)
            .all()
        )
