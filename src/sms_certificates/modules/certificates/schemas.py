"""
Certificates Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Re-use enums and the data value type from the domain layer
from sms_certificates.modules.certificates.models import CertificateStatus, CertificateType
from sms_certificates.modules.certificates.templating import DataValue


# ============================================
# Template Schemas
# ============================================


class CertificateTemplateCreate(BaseModel):
    """Request body for POST /certificate-templates."""

    name: str = Field(..., min_length=1, max_length=200)
    type: CertificateType
    template_html: str
    variables: list[str]
    is_active: bool = True


class CertificateTemplateUpdate(BaseModel):
    """Request body for PUT /certificate-templates/{id}. Omitted fields are unchanged."""

    name: str | None = Field(None, min_length=1, max_length=200)
    type: CertificateType | None = None
    template_html: str | None = None
    variables: list[str] | None = None
    is_active: bool | None = None


class CertificateTemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: CertificateType
    template_html: str
    variables: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RenderTemplateRequest(BaseModel):
    data: dict[str, DataValue]


class RenderTemplateResponse(BaseModel):
    rendered_html: str


class TemplateStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: dict[str, int]


# ============================================
# Certificate Schemas
# ============================================


class GenerateCertificateRequest(BaseModel):
    """Request body for POST /certificates/generate."""

    template_id: int
    student_id: int
    data: dict[str, DataValue]
    issued_by: int
    issued_date: date | None = None
    issued_date_bs: str | None = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")


class BulkStudentItem(BaseModel):
    student_id: int
    data: dict[str, DataValue]


class BulkGenerateRequest(BaseModel):
    """Request body for POST /certificates/bulk-generate."""

    template_id: int
    students: list[BulkStudentItem]
    issued_by: int
    issued_date: date | None = None
    issued_date_bs: str | None = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")


class RevokeCertificateRequest(BaseModel):
    revoked_by: int
    reason: str | None = Field(None, max_length=1000)


class CertificateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    certificate_number: str
    template_id: int
    student_id: int
    type: CertificateType
    issued_date: date
    issued_date_bs: str
    data: dict[str, Any]
    pdf_url: str
    qr_code: str
    verification_url: str
    issued_by: int
    status: CertificateStatus
    revoked_at: datetime | None = None
    revoked_by: int | None = None
    revoked_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class BulkFailureItem(BaseModel):
    student_id: int
    error: str


class BulkGenerateResponse(BaseModel):
    success: list[CertificateResponse]
    failed: list[BulkFailureItem]
    message: str


class CertificateSnapshot(BaseModel):
    """Public certificate view returned by verification."""

    certificate_number: str
    type: CertificateType
    student_id: int
    issued_date: date
    issued_date_bs: str
    data: dict[str, Any]
    status: CertificateStatus
    verification_url: str
    revoked_at: datetime | None = None
    revoked_reason: str | None = None


class VerificationResponse(BaseModel):
    valid: bool
    message: str
    certificate: CertificateSnapshot | None = None
    verified_at: datetime


class RecentCertificate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    certificate_number: str
    student_id: int
    type: CertificateType
    issued_date: date
    status: CertificateStatus


class CertificateStats(BaseModel):
    total: int
    active: int
    revoked: int
    by_type: dict[str, int]
    this_month: int
    recent: list[RecentCertificate]
