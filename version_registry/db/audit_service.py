"""
Audit Trail Service.

Records one append-only event per state-changing lifecycle action and reads
a version's history back in replay order.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..enums import AuditAction
from ..primitives import generate_ulid
from .models import AuditEventModel


class AuditTrail:
    """Service for managing audit events.

    Usage:
        audit = AuditTrail(db_session)
        audit.record(version.id, AuditAction.VERSION_VALIDATED, actor="jdoe", ts=now)

    Events are never updated or deleted. Like the other stores this service
    does not commit; the event is kept only if the surrounding unit of work
    commits.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        version_id: str,
        action: AuditAction,
        actor: str,
        ts: datetime,
        origin: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> AuditEventModel:
        """Append an event to a version's trail.

        Args:
            version_id: ID of the version the action applied to
            action: What happened
            actor: Who performed the action
            ts: When it happened
            origin: Optional host the request came from
            detail: Optional human-readable detail

        Returns:
            The created AuditEventModel
        """
        entry = AuditEventModel(
            id=generate_ulid(),
            version_id=version_id,
            sequence=self._next_sequence(version_id),
            action=action.value,
            actor=actor,
            origin=origin,
            detail=detail,
            ts=ts,
        )

        self.db.add(entry)
        self.db.flush()
        return entry

    def _next_sequence(self, version_id: str) -> int:
        # Callers hold the version row, so allocation is serialized per version
        current = (
            self.db.query(func.max(AuditEventModel.sequence))
            .filter(AuditEventModel.version_id == version_id)
            .scalar()
        )
        return (current or 0) + 1

    # Query methods

    def for_version(self, version_id: str) -> List[AuditEventModel]:
        """Get a version's full trail, oldest first.

        Events sharing a timestamp keep their insertion order.
        """
        return (
            self.db.query(AuditEventModel)
            .filter(AuditEventModel.version_id == version_id)
            .order_by(AuditEventModel.ts, AuditEventModel.sequence)
            .all()
        )

