"""create certificate tables

Revision ID: a7c3e9d1f2b4
Revises:
Create Date: 2026-10-19 12:00:00.000000

This migration:
1. Creates the certificate_type and certificate_status enum types
2. Creates the certificate_templates table
3. Creates the certificates table with a unique certificate_number

certificate_templates is created BEFORE certificates so the template_id
foreign key can reference it.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a7c3e9d1f2b4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

CERTIFICATE_TYPES = (
    "character",
    "transfer",
    "academic_excellence",
    "eca",
    "sports",
    "course_completion",
    "bonafide",
    "conduct",
    "participation",
)
CERTIFICATE_STATUSES = ("active", "revoked")


def upgrade() -> None:
    """Create certificate templates and certificates tables."""
    certificate_type_enum = postgresql.ENUM(
        *CERTIFICATE_TYPES,
        name="certificate_type",
        create_type=False,  # Created below with checkfirst
    )
    certificate_type_enum.create(op.get_bind(), checkfirst=True)

    certificate_status_enum = postgresql.ENUM(
        *CERTIFICATE_STATUSES,
        name="certificate_status",
        create_type=False,
    )
    certificate_status_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "certificate_templates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("type", certificate_type_enum, nullable=False),
        sa.Column("template_html", sa.Text(), nullable=False),
        sa.Column("variables", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_certificate_templates_name"),
    )
    op.create_index(
        "ix_certificate_templates_type", "certificate_templates", ["type"], unique=False
    )
    op.create_index(
        "ix_certificate_templates_is_active", "certificate_templates", ["is_active"], unique=False
    )

    op.create_table(
        "certificates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("certificate_number", sa.String(length=32), nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("type", certificate_type_enum, nullable=False),
        # Issue date in AD and its Bikram Sambat equivalent (YYYY-MM-DD)
        sa.Column("issued_date", sa.Date(), nullable=False),
        sa.Column("issued_date_bs", sa.String(length=10), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("pdf_url", sa.String(length=500), nullable=False),
        sa.Column("qr_code", sa.Text(), nullable=False),
        sa.Column("verification_url", sa.String(length=500), nullable=False),
        sa.Column("issued_by", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            certificate_status_enum,
            nullable=False,
            server_default="active",
        ),
        # Revocation (set together when status becomes revoked)
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.Integer(), nullable=True),
        sa.Column("revoked_reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["certificate_templates.id"],
            name="fk_certificates_template_id",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint("certificate_number", name="uq_certificates_certificate_number"),
    )
    op.create_index("ix_certificates_student_id", "certificates", ["student_id"], unique=False)
    op.create_index("ix_certificates_status", "certificates", ["status"], unique=False)
    op.create_index("ix_certificates_type", "certificates", ["type"], unique=False)
    op.create_index("ix_certificates_issued_date", "certificates", ["issued_date"], unique=False)


def downgrade() -> None:
    """Drop certificate tables and enum types."""
    op.drop_index("ix_certificates_issued_date", table_name="certificates")
    op.drop_index("ix_certificates_type", table_name="certificates")
    op.drop_index("ix_certificates_status", table_name="certificates")
    op.drop_index("ix_certificates_student_id", table_name="certificates")
    op.drop_table("certificates")

    op.drop_index("ix_certificate_templates_is_active", table_name="certificate_templates")
    op.drop_index("ix_certificate_templates_type", table_name="certificate_templates")
    op.drop_table("certificate_templates")

    postgresql.ENUM(*CERTIFICATE_STATUSES, name="certificate_status").drop(
        op.get_bind(), checkfirst=True
    )
    postgresql.ENUM(*CERTIFICATE_TYPES, name="certificate_type").drop(
        op.get_bind(), checkfirst=True
    )
