"""Tests for the explicit unit of work."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import count_rows
from version_registry.db.models import VersionModel
from version_registry.db.services import VersionStore
from version_registry.errors import ErrorCode, LifecycleError
from version_registry.lifecycle.unit_of_work import make_unit_of_work

T0 = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


def create_version(db):
    return VersionStore(db).create("Acme", "Core", "1.2.0", "20240115", "jdoe", now=T0).id


def test_run_commits_and_returns_value(engine):
    uow = make_unit_of_work(engine)

    version_id = uow.run(create_version)

    assert len(version_id) == 26
    assert count_rows(engine, VersionModel) == 1


def test_run_rolls_back_on_error(engine):
    uow = make_unit_of_work(engine)

    def work(db):
        create_version(db)
        raise LifecycleError(ErrorCode.INVALID_STATE, "abort")

    with pytest.raises(LifecycleError):
        uow.run(work)

    assert count_rows(engine, VersionModel) == 0


def test_run_rolls_back_on_commit_failure(engine):
    uow = make_unit_of_work(engine)
    uow.run(create_version)

    # The duplicate is only detected when the pending insert is flushed
    def work(db):
        db.add(
            VersionModel(
                id="01HQ0000000000000000000009",
                client="Acme",
                product="Core",
                version_string="1.2.0",
                build_date="20240115",
                status="Draft",
                responsible="jdoe",
                created_at=T0,
                updated_at=T0,
            )
        )

    with pytest.raises(IntegrityError):
        uow.run(work)

    assert count_rows(engine, VersionModel) == 1
