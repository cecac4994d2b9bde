"""
Tests for racing callers on a shared file-backed database.

Each session here owns its own connection, unlike the in-memory fixtures.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from version_registry.db.base import Base, create_db_engine
from version_registry.db.models import JobModel, VersionModel
from version_registry.db.services import ArtifactStore, JobQueue, VersionStore
from version_registry.enums import VersionStatus
from version_registry.errors import ErrorCode, LifecycleError
from version_registry.lifecycle.orchestrator import LifecycleOrchestrator
from version_registry.lifecycle.outbox import FileOutboxStore
from version_registry.lifecycle.unit_of_work import make_unit_of_work
from version_registry.primitives import SteppingClock

T0 = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def file_engine(tmp_path):
    from version_registry.db import models  # noqa: F401

    engine = create_db_engine(f"sqlite:///{tmp_path / 'registry.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sessions(file_engine):
    factory = sessionmaker(bind=file_engine, autoflush=False)
    first, second = factory(), factory()
    yield first, second
    first.close()
    second.close()


@pytest.fixture
def draft_id(file_engine):
    factory = sessionmaker(bind=file_engine, autoflush=False)
    with factory() as db:
        version = VersionStore(db).create(
            "Acme", "Core", "1.2.0", "20240115", "jdoe", now=T0
        )
        artifacts = ArtifactStore(db)
        artifacts.create(version.id, now=T0, kind="binary", track="base", original_name="a")
        artifacts.create(
            version.id, now=T0, kind="binary", track="increment", original_name="b"
        )
        db.commit()
        return version.id


class TestStatusTransitionRace:
    def test_only_one_of_two_stale_readers_transitions(self, sessions, draft_id):
        first, second = sessions

        # Both callers observe Draft before either writes
        assert VersionStore(first).get(draft_id).status == "Draft"
        assert VersionStore(second).get(draft_id).status == "Draft"

        won = VersionStore(first).transition(
            draft_id, VersionStatus.DRAFT, VersionStatus.READY, T0
        )
        first.commit()
        lost = VersionStore(second).transition(
            draft_id, VersionStatus.DRAFT, VersionStatus.READY, T0
        )
        second.commit()

        assert won is True
        assert lost is False

    def test_second_validate_sees_ready(self, file_engine, draft_id, tmp_path):
        orchestrator = LifecycleOrchestrator(
            unit_of_work=make_unit_of_work(file_engine),
            outbox=FileOutboxStore(tmp_path / "outbox"),
            clock=SteppingClock(),
        )

        results = [orchestrator.validate(draft_id), orchestrator.validate(draft_id)]

        assert [r.ok for r in results] == [True, False]
        assert results[1].code == ErrorCode.INVALID_STATE
        assert len(orchestrator.get_audit_trail(draft_id).unwrap()) == 1


class TestEnqueueRace:
    def test_same_key_from_two_sessions(self, sessions, draft_id):
        first, second = sessions

        inserted_first = JobQueue(first).enqueue(draft_id, "COPY_ARTIFACTS", "copy_k", now=T0)
        first.commit()
        inserted_second = JobQueue(second).enqueue(draft_id, "COPY_ARTIFACTS", "copy_k", now=T0)
        second.commit()

        assert (inserted_first, inserted_second) == (True, False)
        assert first.query(JobModel).count() == 1


class TestConfiguredEngine:
    """Engines built by create_db_engine keep units of work apart."""

    def test_memory_database_shares_one_connection(self):
        engine = create_db_engine("sqlite:///:memory:")

        assert isinstance(engine.pool, StaticPool)
        engine.dispose()

    def test_file_database_does_not_share_connections(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'pool.db'}")

        assert not isinstance(engine.pool, StaticPool)
        engine.dispose()

    def test_inner_rollback_keeps_outer_writes(self, tmp_path):
        from version_registry.db import models  # noqa: F401

        engine = create_db_engine(f"sqlite:///{tmp_path / 'nested.db'}")
        Base.metadata.create_all(engine)
        uow = make_unit_of_work(engine)

        def failing_read(db):
            db.query(VersionModel).count()
            raise LifecycleError(ErrorCode.VERSION_NOT_FOUND, "not there")

        def register(db):
            version = VersionStore(db).create(
                "Acme", "Core", "1.2.0", "20240115", "jdoe", now=T0
            )
            db.flush()
            with pytest.raises(LifecycleError):
                uow.run(failing_read)
            return version.id

        version_id = uow.run(register)

        with Session(engine) as db:
            assert db.get(VersionModel, version_id) is not None
        engine.dispose()
