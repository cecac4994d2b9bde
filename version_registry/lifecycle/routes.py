"""
Version lifecycle API routes.

REST endpoints over the lifecycle orchestrator.
All endpoints are prefixed with /api/versions.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from ..errors import LifecycleResult
from ..schemas import ArtifactAttach, VersionRegister
from .orchestrator import LifecycleOrchestrator, build_orchestrator

router = APIRouter(prefix="/api/versions", tags=["versions"])


@lru_cache
def get_orchestrator() -> LifecycleOrchestrator:
    """Dependency returning the process-wide orchestrator."""
    return build_orchestrator()


def _origin(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _unwrap(result: LifecycleResult) -> Any:
    """Return the result value or raise the matching HTTPException."""
    if not result.ok:
        failure = result.failure
        raise HTTPException(status_code=failure.http_status, detail=failure.to_dict())
    return result.value


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    return value.model_dump(mode="json")


# =============================================================================
# Version Endpoints
# =============================================================================


@router.post("", status_code=201)
async def register_version(
    payload: VersionRegister,
    request: Request,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Register a new version in Draft status."""
    result = orchestrator.register(**payload.model_dump(), origin=_origin(request))
    return _dump(_unwrap(result))


@router.get("")
async def list_versions(
    client: Optional[str] = None,
    product: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    """List versions with optional filtering."""
    result = orchestrator.list_versions(
        client=client, product=product, status=status, limit=limit, offset=offset
    )
    return _dump(_unwrap(result))


@router.get("/{version_id}")
async def get_version(
    version_id: str,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Get a version by ID."""
    return _dump(_unwrap(orchestrator.get_version(version_id)))


@router.post("/{version_id}/validate")
async def validate_version(
    version_id: str,
    request: Request,
    x_actor: Optional[str] = Header(None),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Validate a Draft version and move it to Ready."""
    result = orchestrator.validate(version_id, actor=x_actor, origin=_origin(request))
    return _dump(_unwrap(result))


@router.post("/{version_id}/publish")
async def publish_version(
    version_id: str,
    request: Request,
    x_actor: Optional[str] = Header(None),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Publish a Ready version."""
    result = orchestrator.publish(version_id, actor=x_actor, origin=_origin(request))
    return _dump(_unwrap(result))


# =============================================================================
# Artifact Endpoints
# =============================================================================


@router.post("/{version_id}/artifacts", status_code=201)
async def attach_artifact(
    version_id: str,
    payload: ArtifactAttach,
    request: Request,
    x_actor: Optional[str] = Header(None),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Attach a build artifact to a Draft or Ready version."""
    result = orchestrator.attach_artifact(
        version_id,
        **payload.model_dump(),
        actor=x_actor,
        origin=_origin(request),
    )
    return _dump(_unwrap(result))


@router.get("/{version_id}/artifacts")
async def list_artifacts(
    version_id: str,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    """List the artifacts attached to a version."""
    return _dump(_unwrap(orchestrator.list_artifacts(version_id)))


# =============================================================================
# Audit, Job and Draft Endpoints
# =============================================================================


@router.get("/{version_id}/audit")
async def get_audit_trail(
    version_id: str,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    """Get a version's audit trail, oldest first."""
    return _dump(_unwrap(orchestrator.get_audit_trail(version_id)))


@router.get("/{version_id}/jobs")
async def list_jobs(
    version_id: str,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    """List the jobs enqueued for a version."""
    return _dump(_unwrap(orchestrator.list_jobs(version_id)))


@router.get("/{version_id}/drafts")
async def list_drafts(
    version_id: str,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    """List the publication drafts generated for a version."""
    return _dump(_unwrap(orchestrator.list_drafts(version_id)))
