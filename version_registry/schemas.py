"""
Pydantic schemas for lifecycle inputs and read models.

Inputs validate shape only (presence, lengths, the build-date pattern).
Artifact ``kind`` and ``track`` stay plain strings here so the orchestrator
can report them with their own error codes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, constr, field_validator

from .enums import (
    ArtifactKind,
    ArtifactTrack,
    AuditAction,
    DraftChannel,
    DraftStatus,
    VersionStatus,
)

BUILD_DATE_PATTERN = r"^\d{8}$"


class VersionRegister(BaseModel):
    """Request to register a new version in Draft status."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "client": "Acme",
                "product": "Core",
                "version_string": "1.2.0",
                "build_date": "20240115",
                "responsible": "jdoe",
                "branch": "release/1.2",
            }
        },
    )

    client: constr(strip_whitespace=True, min_length=1, max_length=200)
    product: constr(strip_whitespace=True, min_length=1, max_length=200)
    version_string: constr(strip_whitespace=True, min_length=1, max_length=50)
    build_date: constr(pattern=BUILD_DATE_PATTERN) = Field(
        ..., description="Build date as YYYYMMDD"
    )
    responsible: constr(strip_whitespace=True, min_length=1, max_length=128)
    branch: Optional[constr(strip_whitespace=True, max_length=128)] = None

    @field_validator("build_date")
    @classmethod
    def build_date_is_calendar_date(cls, value: str) -> str:
        try:
            datetime.strptime(value, "%Y%m%d")
        except ValueError:
            raise ValueError(f"'{value}' is not a valid calendar date")
        return value

    @field_validator("branch")
    @classmethod
    def empty_branch_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class ArtifactAttach(BaseModel):
    """Request to attach a build artifact to a version."""

    model_config = ConfigDict(extra="forbid")

    kind: str = Field(..., description="binary | package | document")
    track: str = Field(..., description="base | increment")
    original_name: constr(strip_whitespace=True, min_length=1, max_length=512)
    final_name: Optional[constr(max_length=512)] = None
    dest_path: Optional[constr(max_length=1024)] = None
    size_bytes: Optional[conint(ge=0)] = None
    checksum: Optional[constr(max_length=128)] = None
    uploaded_url: Optional[constr(max_length=2000)] = None


class VersionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client: str
    product: str
    version_string: str
    build_date: str
    status: VersionStatus
    responsible: str
    branch: Optional[str] = None
    release_notes_path: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ArtifactRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    version_id: str
    kind: ArtifactKind
    track: ArtifactTrack
    original_name: str
    final_name: Optional[str] = None
    dest_path: Optional[str] = None
    size_bytes: Optional[int] = None
    checksum: Optional[str] = None
    uploaded_url: Optional[str] = None
    created_at: datetime


class JobRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    version_id: str
    job_type: str
    idempotency_key: str
    payload: Optional[Dict[str, Any]] = None
    status: str
    priority: str
    attempt: int
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DraftRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    version_id: str
    channel: DraftChannel
    subject: str
    body: str
    thread_id: Optional[str] = None
    status: DraftStatus
    evidence_path: Optional[str] = None
    created_at: datetime


class AuditEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    version_id: str
    sequence: int
    action: AuditAction
    actor: str
    origin: Optional[str] = None
    detail: Optional[str] = None
    ts: datetime
