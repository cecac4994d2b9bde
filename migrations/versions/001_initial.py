"""Create version lifecycle tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create versions table
    op.create_table(
        "versions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client", sa.String(200), nullable=False, index=True),
        sa.Column("product", sa.String(200), nullable=False, index=True),
        sa.Column("version_string", sa.String(50), nullable=False),
        sa.Column("build_date", sa.String(8), nullable=False),
        sa.Column(
            "status",
            sa.Enum("Draft", "Ready", "Published", name="version_status"),
            nullable=False,
            index=True,
        ),
        sa.Column("responsible", sa.String(128), nullable=False),
        sa.Column("branch", sa.String(128), nullable=True),
        sa.Column("release_notes_path", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "client",
            "product",
            "version_string",
            "build_date",
            name="uq_versions_identity",
        ),
    )
    op.create_index("ix_versions_created_at", "versions", ["created_at"])

    # Create artifacts table
    op.create_table(
        "artifacts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "version_id",
            sa.String(36),
            sa.ForeignKey("versions.id"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "kind",
            sa.Enum("binary", "package", "document", name="artifact_kind"),
            nullable=False,
        ),
        sa.Column(
            "track",
            sa.Enum("base", "increment", name="artifact_track"),
            nullable=False,
        ),
        sa.Column("original_name", sa.String(512), nullable=False),
        sa.Column("final_name", sa.String(512), nullable=True),
        sa.Column("dest_path", sa.String(1024), nullable=True),
        sa.Column("size_bytes", sa.BigInteger, nullable=True),
        sa.Column("checksum", sa.String(128), nullable=True),
        sa.Column("uploaded_url", sa.String(2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_artifacts_version_kind_track",
        "artifacts",
        ["version_id", "kind", "track"],
    )

    # Create job_queue table
    op.create_table(
        "job_queue",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "version_id",
            sa.String(36),
            sa.ForeignKey("versions.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("job_type", sa.String(64), nullable=False, index=True),
        sa.Column("idempotency_key", sa.String(256), nullable=False, unique=True),
        sa.Column("payload", sa.JSON, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("attempt", sa.Integer, nullable=False),
        sa.Column("output", sa.JSON, nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_job_queue_status_priority", "job_queue", ["status", "priority"]
    )

    # Create drafts table
    op.create_table(
        "drafts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "version_id",
            sa.String(36),
            sa.ForeignKey("versions.id"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "channel",
            sa.Enum("outbox", "outlook", "teams", name="draft_channel"),
            nullable=False,
        ),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("thread_id", sa.String(256), nullable=True),
        sa.Column(
            "status",
            sa.Enum("DRAFT", "SENT", "FAILED", name="draft_status"),
            nullable=False,
        ),
        sa.Column("evidence_path", sa.String(1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    # Create audit_events table
    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "version_id",
            sa.String(36),
            sa.ForeignKey("versions.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "version_registered",
                "artifact_attached",
                "version_validated",
                "version_published",
                name="audit_action",
            ),
            nullable=False,
            index=True,
        ),
        sa.Column("actor", sa.String(128), nullable=False, index=True),
        sa.Column("origin", sa.String(255), nullable=True),
        sa.Column("detail", sa.Text, nullable=True),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.UniqueConstraint(
            "version_id", "sequence", name="uq_audit_events_sequence"
        ),
    )
    op.create_index(
        "ix_audit_events_version_ts",
        "audit_events",
        ["version_id", "ts", "sequence"],
    )


def downgrade() -> None:
    op.drop_index("ix_audit_events_version_ts", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("drafts")
    op.drop_index("ix_job_queue_status_priority", table_name="job_queue")
    op.drop_table("job_queue")
    op.drop_index("ix_artifacts_version_kind_track", table_name="artifacts")
    op.drop_table("artifacts")
    op.drop_index("ix_versions_created_at", table_name="versions")
    op.drop_table("versions")

    # Drop enum types (PostgreSQL only)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "audit_action",
            "draft_status",
            "draft_channel",
            "artifact_track",
            "artifact_kind",
            "version_status",
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
