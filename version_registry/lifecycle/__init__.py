"""
Version lifecycle engine.

Exports the orchestrator and its collaborators: the unit of work that makes
each operation atomic and the outbox the publish step writes to.
"""

from .orchestrator import (
    LifecycleOrchestrator,
    PUBLISH_JOBS,
    build_orchestrator,
    missing_binary_tracks,
)
from .outbox import (
    FileOutboxStore,
    OutboxStore,
    PublicationNotice,
    StagedOutbox,
    compose_notice,
    create_outbox_store,
    stage_notice,
)
from .unit_of_work import UnitOfWork, make_unit_of_work

__all__ = [
    "LifecycleOrchestrator",
    "PUBLISH_JOBS",
    "build_orchestrator",
    "missing_binary_tracks",
    "FileOutboxStore",
    "OutboxStore",
    "PublicationNotice",
    "StagedOutbox",
    "compose_notice",
    "create_outbox_store",
    "stage_notice",
    "UnitOfWork",
    "make_unit_of_work",
]
