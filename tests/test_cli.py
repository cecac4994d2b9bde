"""Tests for the version-registry command line interface."""

import pytest
from typer.testing import CliRunner

from conftest import attach_required_binaries, make_registration
from version_registry import cli
from version_registry.enums import VersionStatus

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_orchestrator(monkeypatch, orchestrator):
    """Point the CLI at the in-memory orchestrator."""
    monkeypatch.setattr(cli, "get_orchestrator", lambda: orchestrator)
    monkeypatch.setattr(cli, "configure_logging", lambda settings=None: None)
    return orchestrator


class TestRegisterCommand:
    def test_register(self, orchestrator):
        result = runner.invoke(
            cli.app,
            [
                "register",
                "--client", "Acme",
                "--product", "Core",
                "--version", "1.2.0",
                "--build", "20240115",
                "--responsible", "jdoe",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Registered version" in result.output
        versions = orchestrator.list_versions().unwrap()
        assert len(versions) == 1
        assert versions[0].status == VersionStatus.DRAFT

    def test_register_bad_build_date_exits_1(self):
        result = runner.invoke(
            cli.app,
            [
                "register",
                "--client", "Acme",
                "--product", "Core",
                "--version", "1.2.0",
                "--build", "15-01-2024",
                "--responsible", "jdoe",
            ],
        )

        assert result.exit_code == 1
        assert "VALIDATION_ERROR" in result.output


class TestLifecycleCommands:
    def test_attach_validate_publish(self, orchestrator, outbox_dir):
        version = orchestrator.register(**make_registration()).unwrap()

        for track in ("base", "increment"):
            result = runner.invoke(
                cli.app,
                [
                    "attach", version.id,
                    "--kind", "binary",
                    "--track", track,
                    "--name", f"core-{track}.bin",
                ],
            )
            assert result.exit_code == 0, result.output

        result = runner.invoke(cli.app, ["validate", version.id, "--actor", "qa"])
        assert result.exit_code == 0, result.output
        assert "Ready" in result.output

        result = runner.invoke(cli.app, ["publish", version.id])
        assert result.exit_code == 0, result.output
        assert "Published" in result.output
        assert (outbox_dir / f"pub_{version.id}.eml").exists()

    def test_validate_without_artifacts_exits_1(self, orchestrator):
        version = orchestrator.register(**make_registration()).unwrap()

        result = runner.invoke(cli.app, ["validate", version.id])

        assert result.exit_code == 1
        assert "NO_ARTIFACTS" in result.output

    def test_attach_invalid_track_exits_1(self, orchestrator):
        version = orchestrator.register(**make_registration()).unwrap()

        result = runner.invoke(
            cli.app,
            ["attach", version.id, "--kind", "binary", "--track", "main", "--name", "a"],
        )

        assert result.exit_code == 1
        assert "INVALID_TRACK" in result.output


class TestReadCommands:
    def test_show(self, orchestrator):
        version = orchestrator.register(**make_registration()).unwrap()

        result = runner.invoke(cli.app, ["show", version.id])

        assert result.exit_code == 0, result.output
        assert "Acme" in result.output
        assert "Draft" in result.output

    def test_show_unknown_version(self):
        result = runner.invoke(cli.app, ["show", "missing"])

        assert result.exit_code == 1
        assert "VERSION_NOT_FOUND" in result.output

    def test_audit(self, orchestrator):
        version = orchestrator.register(**make_registration()).unwrap()
        attach_required_binaries(orchestrator, version.id)

        result = runner.invoke(cli.app, ["audit", version.id])

        assert result.exit_code == 0, result.output
        assert "version_registered" in result.output
        assert "artifact_attached" in result.output
