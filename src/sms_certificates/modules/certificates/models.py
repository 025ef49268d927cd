"""
Certificate Models

Database models for certificate templates and issued certificates.

A certificate's `type` is a snapshot of its template's type at issuance time,
so editing a template never changes certificates already issued from it.
"""

import enum
from collections.abc import Mapping
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sms_certificates.core.database import Base

from .templating import render_template


class CertificateType(str, enum.Enum):
    """Kinds of certificates a school issues."""

    CHARACTER = "character"
    TRANSFER = "transfer"
    ACADEMIC_EXCELLENCE = "academic_excellence"
    ECA = "eca"
    SPORTS = "sports"
    COURSE_COMPLETION = "course_completion"
    BONAFIDE = "bonafide"
    CONDUCT = "conduct"
    PARTICIPATION = "participation"


class CertificateStatus(str, enum.Enum):
    """Lifecycle status of an issued certificate. REVOKED is terminal."""

    ACTIVE = "active"
    REVOKED = "revoked"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# Shared by both tables so the database type is declared once
CERTIFICATE_TYPE_ENUM = Enum(CertificateType, name="certificate_type", values_callable=_enum_values)


class CertificateTemplate(Base):
    """
    Certificate template.

    `template_html` holds `{{variable}}` placeholders; `variables` is the
    ordered list of declared names every issued certificate must supply.
    Templates are never hard-deleted in normal flow, only deactivated.
    """

    __tablename__ = "certificate_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    type: Mapped[CertificateType] = mapped_column(CERTIFICATE_TYPE_ENUM, nullable=False)
    template_html: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[list] = mapped_column(JSON, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    certificates: Mapped[list["Certificate"]] = relationship(
        "Certificate", back_populates="template"
    )

    __table_args__ = (
        Index("ix_certificate_templates_type", "type"),
        Index("ix_certificate_templates_is_active", "is_active"),
    )

    def render(self, data: Mapping[str, object]) -> str:
        """Render the body with `data`; only declared variables are substituted."""
        return render_template(self.template_html, self.variables, data)


class Certificate(Base):
    """
    Issued certificate.

    Rows are written only after the document has been produced. Revocation
    fields are populated together when status moves to REVOKED.
    """

    __tablename__ = "certificates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Unique constraint is the authoritative guard against duplicate numbers
    certificate_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    template_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("certificate_templates.id", ondelete="RESTRICT"),
        nullable=False,
    )
    # Students and users live in other modules; plain ids only
    student_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[CertificateType] = mapped_column(CERTIFICATE_TYPE_ENUM, nullable=False)

    issued_date: Mapped[date] = mapped_column(Date, nullable=False)
    issued_date_bs: Mapped[str] = mapped_column(String(10), nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)

    pdf_url: Mapped[str] = mapped_column(String(500), nullable=False)
    qr_code: Mapped[str] = mapped_column(Text, nullable=False)
    verification_url: Mapped[str] = mapped_column(String(500), nullable=False)
    issued_by: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[CertificateStatus] = mapped_column(
        Enum(
            CertificateStatus,
            name="certificate_status",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=CertificateStatus.ACTIVE,
    )
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    revoked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    template: Mapped["CertificateTemplate"] = relationship(
        "CertificateTemplate", back_populates="certificates"
    )

    __table_args__ = (
        Index("ix_certificates_student_id", "student_id"),
        Index("ix_certificates_status", "status"),
        Index("ix_certificates_type", "type"),
        Index("ix_certificates_issued_date", "issued_date"),
    )
