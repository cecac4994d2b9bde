"""
Command Line Interface for the Version Registry.
"""

from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import get_settings
from .db.base import init_database
from .errors import LifecycleResult
from .lifecycle.orchestrator import LifecycleOrchestrator, build_orchestrator
from .logging_config import configure_logging
from .schemas import AuditEventRead, VersionRead

app = typer.Typer(help="Version Registry - release version lifecycle tracking")
console = Console()


def get_orchestrator() -> LifecycleOrchestrator:
    """Build the orchestrator used by CLI commands."""
    return build_orchestrator()


def _unwrap(result: LifecycleResult):
    """Return the result value, or print the failure and exit with status 1."""
    if not result.ok:
        failure = result.failure
        console.print(f"[red]{failure.code.value}[/red]: {failure.message}")
        if failure.cause:
            console.print(f"  cause: {failure.cause}")
        raise typer.Exit(code=1)
    return result.value


def _print_version(version: VersionRead) -> None:
    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in version.model_dump(mode="json").items():
        table.add_row(field, "" if value is None else str(value))
    console.print(table)


def _print_audit(events: List[AuditEventRead]) -> None:
    table = Table(title="Audit trail")
    table.add_column("#", justify="right")
    table.add_column("Timestamp", no_wrap=True)
    table.add_column("Action", style="cyan", no_wrap=True)
    table.add_column("Actor")
    table.add_column("Detail")
    for event in events:
        table.add_row(
            str(event.sequence),
            event.ts.isoformat(),
            event.action.value,
            event.actor,
            event.detail or "",
        )
    console.print(table)


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings())


@app.command("init-db")
def init_db() -> None:
    """Create the database tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "version_registry.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.debug,
    )


@app.command()
def register(
    client: str = typer.Option(..., help="Client the version is built for"),
    product: str = typer.Option(..., help="Product name"),
    version: str = typer.Option(..., "--version", help="Semantic version string"),
    build: str = typer.Option(..., help="Build date as YYYYMMDD"),
    responsible: str = typer.Option(..., help="Person responsible for the version"),
    branch: Optional[str] = typer.Option(None, help="Source branch"),
) -> None:
    """Register a new version in Draft status."""
    result = get_orchestrator().register(
        client=client,
        product=product,
        version_string=version,
        build_date=build,
        responsible=responsible,
        branch=branch,
    )
    registered = _unwrap(result)
    console.print(f"✅ Registered version [bold]{registered.id}[/bold]")
    _print_version(registered)


@app.command()
def attach(
    version_id: str = typer.Argument(..., help="Version ID"),
    kind: str = typer.Option(..., help="binary | package | document"),
    track: str = typer.Option(..., help="base | increment"),
    name: str = typer.Option(..., help="Original file name"),
    final_name: Optional[str] = typer.Option(None, help="Final file name"),
    dest_path: Optional[str] = typer.Option(None, help="Destination path"),
    size_bytes: Optional[int] = typer.Option(None, help="Size in bytes"),
    checksum: Optional[str] = typer.Option(None, help="Content checksum"),
    uploaded_url: Optional[str] = typer.Option(None, help="Uploaded location"),
    actor: Optional[str] = typer.Option(None, help="Actor performing the action"),
) -> None:
    """Attach a build artifact to a version."""
    result = get_orchestrator().attach_artifact(
        version_id,
        kind=kind,
        track=track,
        original_name=name,
        final_name=final_name,
        dest_path=dest_path,
        size_bytes=size_bytes,
        checksum=checksum,
        uploaded_url=uploaded_url,
        actor=actor,
    )
    artifact = _unwrap(result)
    console.print(
        f"✅ Attached {artifact.kind.value}/{artifact.track.value} "
        f"artifact [bold]{artifact.id}[/bold]"
    )


@app.command()
def validate(
    version_id: str = typer.Argument(..., help="Version ID"),
    actor: Optional[str] = typer.Option(None, help="Actor performing the action"),
) -> None:
    """Validate a Draft version and move it to Ready."""
    validated = _unwrap(get_orchestrator().validate(version_id, actor=actor))
    console.print(f"✅ Version {validated.id} is {validated.status.value}")


@app.command()
def publish(
    version_id: str = typer.Argument(..., help="Version ID"),
    actor: Optional[str] = typer.Option(None, help="Actor performing the action"),
) -> None:
    """Publish a Ready version."""
    published = _unwrap(get_orchestrator().publish(version_id, actor=actor))
    console.print(f"✅ Version {published.id} is {published.status.value}")
    if published.release_notes_path:
        console.print(f"   Release notes: {published.release_notes_path}")


@app.command()
def show(version_id: str = typer.Argument(..., help="Version ID")) -> None:
    """Show a version."""
    _print_version(_unwrap(get_orchestrator().get_version(version_id)))


@app.command()
def audit(version_id: str = typer.Argument(..., help="Version ID")) -> None:
    """Show a version's audit trail."""
    _print_audit(_unwrap(get_orchestrator().get_audit_trail(version_id)))


if __name__ == "__main__":
    app()
