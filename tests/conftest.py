"""Test configuration and fixtures."""

from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from version_registry.db.base import Base
from version_registry.lifecycle.orchestrator import LifecycleOrchestrator
from version_registry.lifecycle.outbox import FileOutboxStore
from version_registry.lifecycle.unit_of_work import make_unit_of_work
from version_registry.primitives import SteppingClock


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create a fresh in-memory database for each test."""
    from version_registry.db import models  # noqa: F401

    test_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """A session for exercising the stores directly."""
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def outbox_dir(tmp_path) -> Path:
    return tmp_path / "outbox"


@pytest.fixture
def orchestrator(engine, clock, outbox_dir) -> LifecycleOrchestrator:
    """Create a test orchestrator over the in-memory database."""
    return LifecycleOrchestrator(
        unit_of_work=make_unit_of_work(engine),
        outbox=FileOutboxStore(outbox_dir),
        clock=clock,
        default_actor="system",
    )


def make_registration(**overrides) -> dict:
    """Create valid register arguments with optional overrides."""
    defaults = {
        "client": "Acme",
        "product": "Core",
        "version_string": "1.2.0",
        "build_date": "20240115",
        "responsible": "jdoe",
    }
    defaults.update(overrides)
    return defaults


def attach_required_binaries(orchestrator: LifecycleOrchestrator, version_id: str) -> None:
    """Attach one binary on each track so the version can be validated."""
    for track, name in (("base", "core-base.bin"), ("increment", "core-inc.bin")):
        result = orchestrator.attach_artifact(
            version_id, kind="binary", track=track, original_name=name
        )
        assert result.ok, result.failure


@pytest.fixture
def draft_version(orchestrator):
    """A registered version in Draft status with no artifacts."""
    return orchestrator.register(**make_registration()).unwrap()


@pytest.fixture
def ready_version(orchestrator, draft_version):
    """A validated version in Ready status."""
    attach_required_binaries(orchestrator, draft_version.id)
    return orchestrator.validate(draft_version.id, actor="qa").unwrap()


def count_rows(engine: Engine, model) -> int:
    """Count the committed rows of a table."""
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model))
