"""
Tests for the table services: VersionStore, ArtifactStore, JobQueue and
DraftStore.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from version_registry.db.models import JobModel, VersionModel
from version_registry.db.services import (
    ArtifactStore,
    DraftStore,
    JobQueue,
    VersionStore,
)
from version_registry.enums import (
    DraftChannel,
    DraftStatus,
    JobPriority,
    JobStatus,
    VersionStatus,
)

T0 = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def version(db_session) -> VersionModel:
    return VersionStore(db_session).create(
        "Acme", "Core", "1.2.0", "20240115", "jdoe", now=T0
    )


class TestVersionStore:
    """Tests for VersionStore."""

    def test_create_starts_in_draft(self, db_session, version):
        assert version.status == VersionStatus.DRAFT.value
        assert len(version.id) == 26

    def test_create_duplicate_raises(self, db_session, version):
        with pytest.raises(IntegrityError):
            VersionStore(db_session).create(
                "Acme", "Core", "1.2.0", "20240115", "other", now=T0
            )

    def test_exists(self, db_session, version):
        store = VersionStore(db_session)

        assert store.exists("Acme", "Core", "1.2.0", "20240115")
        assert not store.exists("Acme", "Core", "1.2.0", "20240116")

    def test_get_and_get_for_update(self, db_session, version):
        store = VersionStore(db_session)

        assert store.get(version.id) is version
        assert store.get_for_update(version.id) is version
        assert store.get("missing") is None

    def test_transition_matches_expected_status(self, db_session, version):
        store = VersionStore(db_session)
        later = T0 + timedelta(minutes=5)

        moved = store.transition(version.id, VersionStatus.DRAFT, VersionStatus.READY, later)
        db_session.refresh(version)

        assert moved
        assert version.status == VersionStatus.READY.value

    def test_transition_from_wrong_status_is_noop(self, db_session, version):
        store = VersionStore(db_session)

        moved = store.transition(
            version.id, VersionStatus.READY, VersionStatus.PUBLISHED, T0
        )
        db_session.refresh(version)

        assert not moved
        assert version.status == VersionStatus.DRAFT.value

    def test_second_transition_loses(self, db_session, version):
        store = VersionStore(db_session)

        first = store.transition(version.id, VersionStatus.DRAFT, VersionStatus.READY, T0)
        second = store.transition(version.id, VersionStatus.DRAFT, VersionStatus.READY, T0)

        assert (first, second) == (True, False)

    def test_transition_sets_extra_values(self, db_session, version):
        store = VersionStore(db_session)
        store.transition(version.id, VersionStatus.DRAFT, VersionStatus.READY, T0)

        store.transition(
            version.id,
            VersionStatus.READY,
            VersionStatus.PUBLISHED,
            T0,
            release_notes_path="/tmp/notes.md",
        )
        db_session.refresh(version)

        assert version.release_notes_path == "/tmp/notes.md"


class TestArtifactStore:
    def test_create_and_list(self, db_session, version):
        store = ArtifactStore(db_session)
        store.create(version.id, now=T0, kind="binary", track="base", original_name="a")
        store.create(
            version.id,
            now=T0 + timedelta(seconds=1),
            kind="document",
            track="increment",
            original_name="b",
        )

        artifacts = store.list_for_version(version.id)

        assert [a.original_name for a in artifacts] == ["a", "b"]
        assert store.list_for_version("other") == []


class TestJobQueue:
    """Tests for JobQueue.enqueue() idempotency."""

    def test_enqueue_inserts_pending_job(self, db_session, version):
        queue = JobQueue(db_session)

        inserted = queue.enqueue(
            version.id, "COPY_ARTIFACTS", f"copy_{version.id}", now=T0,
            payload={"files": 2},
        )

        assert inserted
        job = queue.get_by_key(f"copy_{version.id}")
        assert job.status == JobStatus.PENDING.value
        assert job.priority == JobPriority.NORMAL.value
        assert job.attempt == 0
        assert job.payload == {"files": 2}

    def test_duplicate_key_is_silent_noop(self, db_session, version):
        queue = JobQueue(db_session)

        first = queue.enqueue(version.id, "COMPUTE_MD5", "md5_x", now=T0)
        second = queue.enqueue(
            version.id, "COMPUTE_MD5", "md5_x", now=T0, priority=JobPriority.HIGH
        )

        assert (first, second) == (True, False)
        assert db_session.query(JobModel).count() == 1
        assert queue.get_by_key("md5_x").priority == JobPriority.NORMAL.value

    def test_duplicate_key_keeps_transaction_usable(self, db_session, version):
        queue = JobQueue(db_session)
        queue.enqueue(version.id, "GEN_OUTBOX", "outbox_x", now=T0)
        queue.enqueue(version.id, "GEN_OUTBOX", "outbox_x", now=T0)
        queue.enqueue(version.id, "COPY_ARTIFACTS", "copy_x", now=T0)
        db_session.commit()

        assert len(queue.list_for_version(version.id)) == 2


class TestDraftStore:
    def test_create_defaults(self, db_session, version):
        store = DraftStore(db_session)

        draft = store.create(version.id, subject="s", body="b", now=T0)

        assert draft.channel == DraftChannel.OUTBOX.value
        assert draft.status == DraftStatus.DRAFT.value
        assert store.list_for_version(version.id) == [draft]
