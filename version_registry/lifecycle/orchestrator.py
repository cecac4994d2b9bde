"""
Version lifecycle orchestrator.

The only component with business rules. Each public method runs as one unit
of work: it reads the version, checks the rules for the requested
transition, writes every affected store and appends one audit event. Rule
violations abort the unit of work and come back to the caller as a failed
``LifecycleResult``; nothing is committed for a failed operation.

State machine:
    Draft --validate--> Ready --publish--> Published
    Artifacts may be attached while Draft or Ready. Published is terminal.
"""

from __future__ import annotations

from typing import AbstractSet, Callable, Iterable, List, Optional, TypeVar

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..db.audit_service import AuditTrail
from ..db.models import ArtifactModel, VersionModel
from ..db.services import ArtifactStore, DraftStore, JobQueue, VersionStore
from ..enums import (
    ATTACHABLE_STATUSES,
    ArtifactKind,
    ArtifactTrack,
    AuditAction,
    DraftChannel,
    JobPriority,
    JobType,
    VersionStatus,
)
from ..errors import ErrorCode, LifecycleError, LifecycleFailure, LifecycleResult
from ..primitives import Clock, SystemClock
from ..schemas import (
    ArtifactAttach,
    ArtifactRead,
    AuditEventRead,
    DraftRead,
    JobRead,
    VersionRead,
    VersionRegister,
)
from .outbox import (
    OutboxStore,
    StagedOutbox,
    compose_notice,
    create_outbox_store,
    stage_notice,
)
from .unit_of_work import UnitOfWork

logger = structlog.get_logger()

T = TypeVar("T")

# Jobs enqueued on publish: (idempotency key prefix, job type)
PUBLISH_JOBS = (
    ("copy", JobType.COPY_ARTIFACTS),
    ("md5", JobType.COMPUTE_MD5),
    ("outbox", JobType.GEN_OUTBOX),
)

# A release must ship a binary on each of these tracks
REQUIRED_BINARY_TRACKS = (ArtifactTrack.BASE, ArtifactTrack.INCREMENT)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        parts.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "; ".join(parts)


def missing_binary_tracks(artifacts: Iterable[ArtifactModel]) -> List[ArtifactTrack]:
    """Return the required tracks that have no binary artifact yet."""
    covered = {
        artifact.track
        for artifact in artifacts
        if artifact.kind == ArtifactKind.BINARY.value
    }
    return [track for track in REQUIRED_BINARY_TRACKS if track.value not in covered]


class LifecycleOrchestrator:
    """Drives versions through Draft, Ready and Published.

    Args:
        unit_of_work: Transaction boundary for every operation
        outbox: Where publication notices are written
        clock: Time source for created/updated fields and audit ordering
        default_actor: Actor recorded when a caller does not name one
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        outbox: OutboxStore,
        clock: Optional[Clock] = None,
        default_actor: str = "system",
    ):
        self.unit_of_work = unit_of_work
        self.outbox = outbox
        self.clock = clock or SystemClock()
        self.default_actor = default_actor

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def register(
        self,
        client: str,
        product: str,
        version_string: str,
        build_date: str,
        responsible: str,
        branch: Optional[str] = None,
        origin: Optional[str] = None,
    ) -> LifecycleResult[VersionRead]:
        """Register a new version in Draft status."""
        try:
            request = VersionRegister(
                client=client,
                product=product,
                version_string=version_string,
                build_date=build_date,
                responsible=responsible,
                branch=branch,
            )
        except ValidationError as exc:
            return self._reject(
                "register",
                LifecycleFailure(ErrorCode.VALIDATION_ERROR, _format_validation_error(exc)),
            )

        def work(db: Session) -> VersionRead:
            versions = VersionStore(db)
            identity = (
                request.client,
                request.product,
                request.version_string,
                request.build_date,
            )
            if versions.exists(*identity):
                raise LifecycleError(
                    ErrorCode.DUPLICATE_VERSION,
                    "A version with the same client, product, version and build "
                    "date already exists",
                )

            now = self.clock.now()
            try:
                version = versions.create(
                    *identity,
                    responsible=request.responsible,
                    now=now,
                    branch=request.branch,
                )
            except IntegrityError as exc:
                # Lost a race with a concurrent registration of the same tuple
                raise LifecycleError(
                    ErrorCode.DUPLICATE_VERSION,
                    "A version with the same client, product, version and build "
                    "date already exists",
                    cause=str(exc.orig),
                )

            AuditTrail(db).record(
                version.id,
                AuditAction.VERSION_REGISTERED,
                actor=request.responsible,
                ts=now,
                origin=origin,
                detail="Version registered in Draft status",
            )
            return VersionRead.model_validate(version)

        return self._execute(
            "register",
            work,
            log_success=True,
            client=request.client,
            product=request.product,
            version_string=request.version_string,
            build_date=request.build_date,
        )

    def attach_artifact(
        self,
        version_id: str,
        kind: str,
        track: str,
        original_name: str,
        final_name: Optional[str] = None,
        dest_path: Optional[str] = None,
        size_bytes: Optional[int] = None,
        checksum: Optional[str] = None,
        uploaded_url: Optional[str] = None,
        actor: Optional[str] = None,
        origin: Optional[str] = None,
    ) -> LifecycleResult[ArtifactRead]:
        """Attach a build artifact to a Draft or Ready version."""
        actor = actor or self.default_actor

        def work(db: Session) -> ArtifactRead:
            version = self._require_version(VersionStore(db), version_id)
            self._require_status(
                version,
                ATTACHABLE_STATUSES,
                "Artifacts can only be attached to a Draft or Ready version",
            )

            try:
                artifact_kind = ArtifactKind(kind)
            except ValueError:
                raise LifecycleError(
                    ErrorCode.INVALID_TYPE,
                    f"Invalid artifact type '{kind}'; expected one of "
                    f"{', '.join(k.value for k in ArtifactKind)}",
                )
            try:
                artifact_track = ArtifactTrack(track)
            except ValueError:
                raise LifecycleError(
                    ErrorCode.INVALID_TRACK,
                    f"Invalid track '{track}'; expected one of "
                    f"{', '.join(t.value for t in ArtifactTrack)}",
                )

            try:
                request = ArtifactAttach(
                    kind=artifact_kind.value,
                    track=artifact_track.value,
                    original_name=original_name,
                    final_name=final_name,
                    dest_path=dest_path,
                    size_bytes=size_bytes,
                    checksum=checksum,
                    uploaded_url=uploaded_url,
                )
            except ValidationError as exc:
                raise LifecycleError(
                    ErrorCode.VALIDATION_ERROR, _format_validation_error(exc)
                )

            now = self.clock.now()
            artifact = ArtifactStore(db).create(
                version.id, now=now, **request.model_dump()
            )
            AuditTrail(db).record(
                version.id,
                AuditAction.ARTIFACT_ATTACHED,
                actor=actor,
                ts=now,
                origin=origin,
                detail=(
                    f"kind={artifact_kind.value}, track={artifact_track.value}, "
                    f"name={request.original_name}"
                ),
            )
            return ArtifactRead.model_validate(artifact)

        return self._execute(
            "attach_artifact", work, log_success=True, version_id=version_id, actor=actor
        )

    def validate(
        self,
        version_id: str,
        actor: Optional[str] = None,
        origin: Optional[str] = None,
    ) -> LifecycleResult[VersionRead]:
        """Check the artifact set and move a Draft version to Ready."""
        actor = actor or self.default_actor

        def work(db: Session) -> VersionRead:
            versions = VersionStore(db)
            version = self._require_version(versions, version_id)
            self._require_status(
                version, {VersionStatus.DRAFT}, "Only a Draft version can be validated"
            )

            artifacts = ArtifactStore(db).list_for_version(version.id)
            if not artifacts:
                raise LifecycleError(
                    ErrorCode.NO_ARTIFACTS,
                    "Artifacts must be attached before validating",
                )
            missing = missing_binary_tracks(artifacts)
            if missing:
                raise LifecycleError(
                    ErrorCode.ARTIFACT_RULE_VIOLATION,
                    "At least one binary is required on the base and on the "
                    f"increment track; missing: {', '.join(t.value for t in missing)}",
                )

            now = self.clock.now()
            self._transition(
                db, versions, version, VersionStatus.DRAFT, VersionStatus.READY, now
            )
            AuditTrail(db).record(
                version.id,
                AuditAction.VERSION_VALIDATED,
                actor=actor,
                ts=now,
                origin=origin,
                detail="Status -> Ready",
            )
            return VersionRead.model_validate(version)

        return self._execute(
            "validate", work, log_success=True, version_id=version_id, actor=actor
        )

    def publish(
        self,
        version_id: str,
        actor: Optional[str] = None,
        origin: Optional[str] = None,
    ) -> LifecycleResult[VersionRead]:
        """Publish a Ready version.

        Enqueues the publication jobs, writes the outbox notice and release
        notes, records the draft and moves the version to Published. If any
        step fails, none of it is committed and the outbox files are removed.
        """
        actor = actor or self.default_actor
        staged: List[StagedOutbox] = []

        def work(db: Session) -> VersionRead:
            versions = VersionStore(db)
            version = self._require_version(versions, version_id)
            self._require_status(
                version, {VersionStatus.READY}, "Only a Ready version can be published"
            )

            now = self.clock.now()
            jobs = JobQueue(db)
            for prefix, job_type in PUBLISH_JOBS:
                jobs.enqueue(
                    version.id,
                    job_type.value,
                    f"{prefix}_{version.id}",
                    now=now,
                    priority=JobPriority.NORMAL,
                )

            notice = compose_notice(version)
            try:
                outbox = stage_notice(self.outbox, notice)
            except OSError as exc:
                raise LifecycleError(
                    ErrorCode.OUTBOX_GENERATION_FAILED,
                    "Could not generate the local outbox",
                    cause=str(exc),
                )
            staged.append(outbox)
            DraftStore(db).create(
                version.id,
                subject=notice.subject,
                body=notice.body,
                now=now,
                channel=DraftChannel.OUTBOX,
            )

            self._transition(
                db,
                versions,
                version,
                VersionStatus.READY,
                VersionStatus.PUBLISHED,
                now,
                release_notes_path=outbox.location(notice.release_notes_name),
            )
            AuditTrail(db).record(
                version.id,
                AuditAction.VERSION_PUBLISHED,
                actor=actor,
                ts=now,
                origin=origin,
                detail="Status -> Published, local outbox generated",
            )

            # Last step before commit: the files take their final names
            try:
                outbox.promote()
            except OSError as exc:
                raise LifecycleError(
                    ErrorCode.OUTBOX_GENERATION_FAILED,
                    "Could not generate the local outbox",
                    cause=str(exc),
                )
            return VersionRead.model_validate(version)

        def discard_outbox() -> None:
            for outbox in staged:
                outbox.discard()

        return self._execute(
            "publish",
            work,
            log_success=True,
            on_failure=discard_outbox,
            version_id=version_id,
            actor=actor,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_version(self, version_id: str) -> LifecycleResult[VersionRead]:
        def work(db: Session) -> VersionRead:
            return VersionRead.model_validate(
                self._require_version(VersionStore(db), version_id, lock=False)
            )

        return self._execute("get_version", work, version_id=version_id)

    def list_versions(
        self,
        client: Optional[str] = None,
        product: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> LifecycleResult[List[VersionRead]]:
        """List versions, newest first."""
        try:
            status_filter = VersionStatus(status) if status else None
        except ValueError:
            return self._reject(
                "list_versions",
                LifecycleFailure(
                    ErrorCode.VALIDATION_ERROR, f"Unknown version status '{status}'"
                ),
            )

        def work(db: Session) -> List[VersionRead]:
            rows = VersionStore(db).list(
                client=client,
                product=product,
                status=status_filter,
                limit=limit,
                offset=offset,
            )
            return [VersionRead.model_validate(row) for row in rows]

        return self._execute("list_versions", work)

    def list_artifacts(self, version_id: str) -> LifecycleResult[List[ArtifactRead]]:
        def work(db: Session) -> List[ArtifactRead]:
            self._require_version(VersionStore(db), version_id, lock=False)
            return [
                ArtifactRead.model_validate(row)
                for row in ArtifactStore(db).list_for_version(version_id)
            ]

        return self._execute("list_artifacts", work, version_id=version_id)

    def get_audit_trail(self, version_id: str) -> LifecycleResult[List[AuditEventRead]]:
        """Return the version's audit events in replay order."""

        def work(db: Session) -> List[AuditEventRead]:
            self._require_version(VersionStore(db), version_id, lock=False)
            return [
                AuditEventRead.model_validate(row)
                for row in AuditTrail(db).for_version(version_id)
            ]

        return self._execute("get_audit_trail", work, version_id=version_id)

    def list_jobs(self, version_id: str) -> LifecycleResult[List[JobRead]]:
        def work(db: Session) -> List[JobRead]:
            self._require_version(VersionStore(db), version_id, lock=False)
            return [
                JobRead.model_validate(row)
                for row in JobQueue(db).list_for_version(version_id)
            ]

        return self._execute("list_jobs", work, version_id=version_id)

    def list_drafts(self, version_id: str) -> LifecycleResult[List[DraftRead]]:
        def work(db: Session) -> List[DraftRead]:
            self._require_version(VersionStore(db), version_id, lock=False)
            return [
                DraftRead.model_validate(row)
                for row in DraftStore(db).list_for_version(version_id)
            ]

        return self._execute("list_drafts", work, version_id=version_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_version(
        versions: VersionStore, version_id: str, lock: bool = True
    ) -> VersionModel:
        version = versions.get_for_update(version_id) if lock else versions.get(version_id)
        if version is None:
            raise LifecycleError(
                ErrorCode.VERSION_NOT_FOUND, f"Version '{version_id}' not found"
            )
        return version

    @staticmethod
    def _require_status(
        version: VersionModel, allowed: AbstractSet[VersionStatus], message: str
    ) -> None:
        if VersionStatus(version.status) not in allowed:
            raise LifecycleError(
                ErrorCode.INVALID_STATE, f"{message} (current status: {version.status})"
            )

    @staticmethod
    def _transition(
        db: Session,
        versions: VersionStore,
        version: VersionModel,
        expected: VersionStatus,
        target: VersionStatus,
        now,
        **values,
    ) -> None:
        if not versions.transition(version.id, expected, target, now, **values):
            raise LifecycleError(
                ErrorCode.INVALID_STATE,
                f"Version '{version.id}' is no longer {expected.value}",
            )
        db.refresh(version)

    def _reject(
        self, operation: str, failure: LifecycleFailure, **context
    ) -> LifecycleResult:
        logger.warning(
            "Lifecycle operation rejected",
            operation=operation,
            **context,
            code=failure.code.value,
            reason=failure.message,
        )
        return LifecycleResult.fail(failure)

    def _execute(
        self,
        operation: str,
        work: Callable[[Session], T],
        log_success: bool = False,
        on_failure: Optional[Callable[[], None]] = None,
        **context,
    ) -> LifecycleResult[T]:
        """Run ``work`` as one unit of work and wrap the outcome.

        ``on_failure`` runs after the rollback of a failed unit of work.
        """
        log = logger.bind(operation=operation, **context)
        try:
            value = self.unit_of_work.run(work)
        except LifecycleError as exc:
            if on_failure is not None:
                on_failure()
            return self._reject(operation, exc.failure, **context)
        except Exception as exc:
            if on_failure is not None:
                on_failure()
            log.exception("Lifecycle operation failed")
            return LifecycleResult.fail(
                LifecycleFailure(
                    ErrorCode.INTERNAL_ERROR,
                    f"Unexpected error during {operation}",
                    cause=str(exc),
                )
            )

        if log_success:
            log.info("Lifecycle operation completed")
        return LifecycleResult.success(value)


def build_orchestrator(settings: Optional[Settings] = None) -> LifecycleOrchestrator:
    """Create an orchestrator wired to the configured database and outbox."""
    settings = settings or get_settings()
    return LifecycleOrchestrator(
        unit_of_work=UnitOfWork(),
        outbox=create_outbox_store(settings.outbox_dir),
        clock=SystemClock(),
        default_actor=settings.default_actor,
    )
