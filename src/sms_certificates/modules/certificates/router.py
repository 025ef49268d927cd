"""
Certificates Router

API endpoints for certificate templates and issued certificates.

Endpoints:
- POST /certificate-templates - Create a template
- GET /certificate-templates - List templates (filter by type, active flag)
- GET /certificate-templates/stats - Template statistics
- GET /certificate-templates/{id} - Get a template
- PUT /certificate-templates/{id} - Update a template
- DELETE /certificate-templates/{id} - Deactivate a template
- POST /certificate-templates/{id}/render - Render a template with data

- POST /certificates/generate - Issue one certificate
- POST /certificates/bulk-generate - Issue certificates for many students
- GET /certificates - List certificates with filters
- GET /certificates/stats - Certificate statistics
- GET /certificates/verify/{certificate_number} - Public verification
- GET /certificates/student/{student_id} - Certificates of one student
- GET /certificates/{id} - Get a certificate
- PUT /certificates/{id}/revoke - Revoke a certificate

Errors are returned as {"detail": {"error": <code>, "message": <text>}}.
"""

import logging
from datetime import UTC, date, datetime
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from sms_certificates.modules.certificates.dependencies import (
    get_certificate_service,
    get_template_service,
)
from sms_certificates.modules.certificates.errors import CertificateServiceError
from sms_certificates.modules.certificates.models import CertificateStatus, CertificateType
from sms_certificates.modules.certificates.repository import CertificateFilters
from sms_certificates.modules.certificates.schemas import (
    BulkFailureItem,
    BulkGenerateRequest,
    BulkGenerateResponse,
    CertificateResponse,
    CertificateSnapshot,
    CertificateStats,
    CertificateTemplateCreate,
    CertificateTemplateResponse,
    CertificateTemplateUpdate,
    GenerateCertificateRequest,
    RecentCertificate,
    RenderTemplateRequest,
    RenderTemplateResponse,
    RevokeCertificateRequest,
    TemplateStats,
    VerificationResponse,
)
from sms_certificates.modules.certificates.service import (
    MESSAGE_NUMBER_REQUIRED,
    CertificateService,
    StudentCertificateRequest,
)
from sms_certificates.modules.certificates.template_service import CertificateTemplateService

logger = logging.getLogger(__name__)

template_router = APIRouter()
router = APIRouter()


# ============================================
# Helper Functions
# ============================================


def _handle_service_error(e: CertificateServiceError) -> NoReturn:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    ) from e


def _internal_error(e: Exception, action: str) -> NoReturn:
    logger.exception(f"Error {action}: {e}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    ) from e


# ============================================
# Template Endpoints
# ============================================


@template_router.post(
    "",
    response_model=CertificateTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Certificate Template",
    description="""
Create a certificate template.

**Validation:**
- `name` must be unique
- `template_html` must not be empty
- `variables` must be non-empty, valid identifiers, without duplicates
- Every variable must appear in `template_html` as `{{variable}}`
""",
    responses={
        201: {"description": "Template created"},
        400: {"description": "Invalid template body or variables"},
        409: {"description": "Template name already exists"},
    },
)
async def create_template(
    data: CertificateTemplateCreate,
    service: CertificateTemplateService = Depends(get_template_service),
) -> CertificateTemplateResponse:
    try:
        template = await service.create_template(
            name=data.name,
            type=data.type,
            template_html=data.template_html,
            variables=data.variables,
            is_active=data.is_active,
        )
        return CertificateTemplateResponse.model_validate(template)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, "creating certificate template")


@template_router.get(
    "",
    response_model=list[CertificateTemplateResponse],
    summary="List Certificate Templates",
)
async def list_templates(
    type: CertificateType | None = Query(None, description="Filter by certificate type"),
    is_active: bool | None = Query(None, description="Filter by active flag"),
    service: CertificateTemplateService = Depends(get_template_service),
) -> list[CertificateTemplateResponse]:
    try:
        templates = await service.list_templates(type=type, is_active=is_active)
        return [CertificateTemplateResponse.model_validate(t) for t in templates]
    except Exception as e:
        _internal_error(e, "listing certificate templates")


@template_router.get(
    "/stats",
    response_model=TemplateStats,
    summary="Get Template Statistics",
)
async def get_template_stats(
    service: CertificateTemplateService = Depends(get_template_service),
) -> TemplateStats:
    try:
        return TemplateStats(**await service.get_template_stats())
    except Exception as e:
        _internal_error(e, "fetching template statistics")


@template_router.get(
    "/{template_id}",
    response_model=CertificateTemplateResponse,
    summary="Get Certificate Template",
    responses={404: {"description": "Template not found"}},
)
async def get_template(
    template_id: int,
    service: CertificateTemplateService = Depends(get_template_service),
) -> CertificateTemplateResponse:
    try:
        template = await service.get_template(template_id)
        return CertificateTemplateResponse.model_validate(template)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, f"fetching certificate template {template_id}")


@template_router.put(
    "/{template_id}",
    response_model=CertificateTemplateResponse,
    summary="Update Certificate Template",
    description="""
Partially update a template. Omitted fields keep their current value.

When `template_html` or `variables` change, validation runs again against the
merged body and variable list.
""",
    responses={
        400: {"description": "Invalid template body or variables"},
        404: {"description": "Template not found"},
        409: {"description": "Template name already exists"},
    },
)
async def update_template(
    template_id: int,
    data: CertificateTemplateUpdate,
    service: CertificateTemplateService = Depends(get_template_service),
) -> CertificateTemplateResponse:
    try:
        template = await service.update_template(template_id, data.model_dump(exclude_unset=True))
        return CertificateTemplateResponse.model_validate(template)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, f"updating certificate template {template_id}")


@template_router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate Certificate Template",
    responses={404: {"description": "Template not found"}},
)
async def delete_template(
    template_id: int,
    service: CertificateTemplateService = Depends(get_template_service),
) -> Response:
    """Soft delete: the template stays in place with is_active=false."""
    try:
        await service.delete_template(template_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, f"deleting certificate template {template_id}")


@template_router.post(
    "/{template_id}/render",
    response_model=RenderTemplateResponse,
    summary="Render Certificate Template",
    responses={
        400: {"description": "Inactive template or missing variables"},
        404: {"description": "Template not found"},
    },
)
async def render_template(
    template_id: int,
    data: RenderTemplateRequest,
    service: CertificateTemplateService = Depends(get_template_service),
) -> RenderTemplateResponse:
    try:
        rendered = await service.render_template(template_id, data.data)
        return RenderTemplateResponse(rendered_html=rendered)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, f"rendering certificate template {template_id}")


# ============================================
# Certificate Endpoints
# ============================================


@router.post(
    "/generate",
    response_model=CertificateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate Certificate",
    description="""
Issue a certificate for one student from an active template.

The issue date defaults to today and its Bikram Sambat date is computed when
not supplied. A PDF with a verification QR code is produced before the
certificate is saved.
""",
    responses={
        201: {"description": "Certificate issued"},
        400: {"description": "Inactive template or missing variables"},
        404: {"description": "Template not found"},
        503: {"description": "No unique certificate number available"},
    },
)
async def generate_certificate(
    data: GenerateCertificateRequest,
    service: CertificateService = Depends(get_certificate_service),
) -> CertificateResponse:
    try:
        certificate = await service.generate_certificate(
            template_id=data.template_id,
            student_id=data.student_id,
            data=data.data,
            issued_by=data.issued_by,
            issued_date=data.issued_date,
            issued_date_bs=data.issued_date_bs,
        )
        return CertificateResponse.model_validate(certificate)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, "generating certificate")


@router.post(
    "/bulk-generate",
    response_model=BulkGenerateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Bulk Generate Certificates",
    description="""
Issue certificates for many students from one template.

Each student is processed independently: failures are listed in `failed`
and do not stop the batch. An unknown or inactive template fails the whole
request.
""",
    responses={
        400: {"description": "Inactive template"},
        404: {"description": "Template not found"},
    },
)
async def bulk_generate_certificates(
    data: BulkGenerateRequest,
    service: CertificateService = Depends(get_certificate_service),
) -> BulkGenerateResponse:
    try:
        result = await service.bulk_generate_certificates(
            template_id=data.template_id,
            students=[
                StudentCertificateRequest(student_id=item.student_id, data=item.data)
                for item in data.students
            ],
            issued_by=data.issued_by,
            issued_date=data.issued_date,
            issued_date_bs=data.issued_date_bs,
        )
        return BulkGenerateResponse(
            success=[CertificateResponse.model_validate(c) for c in result.success],
            failed=[BulkFailureItem(student_id=f.student_id, error=f.error) for f in result.failed],
            message=(
                f"Generated {len(result.success)} certificates successfully. "
                f"{len(result.failed)} failed."
            ),
        )
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, "bulk generating certificates")


@router.get(
    "",
    response_model=list[CertificateResponse],
    summary="List Certificates",
    description="""
List issued certificates, most recently issued first.

**Filters:**
- `student_id`, `type`, `status`
- `issued_date_from` / `issued_date_to`: inclusive issue date range
- `search`: substring of the certificate number
""",
)
async def list_certificates(
    student_id: int | None = Query(None),
    type: CertificateType | None = Query(None),
    status_filter: CertificateStatus | None = Query(None, alias="status"),
    issued_date_from: date | None = Query(None),
    issued_date_to: date | None = Query(None),
    search: str | None = Query(None, min_length=1, max_length=100),
    service: CertificateService = Depends(get_certificate_service),
) -> list[CertificateResponse]:
    try:
        certificates = await service.list_certificates(
            CertificateFilters(
                student_id=student_id,
                type=type,
                status=status_filter,
                issued_date_from=issued_date_from,
                issued_date_to=issued_date_to,
                search=search,
            )
        )
        return [CertificateResponse.model_validate(c) for c in certificates]
    except Exception as e:
        _internal_error(e, "listing certificates")


@router.get(
    "/stats",
    response_model=CertificateStats,
    summary="Get Certificate Statistics",
)
async def get_certificate_stats(
    service: CertificateService = Depends(get_certificate_service),
) -> CertificateStats:
    try:
        stats = await service.get_certificate_stats()
        return CertificateStats(
            total=stats["total"],
            active=stats["active"],
            revoked=stats["revoked"],
            by_type=stats["by_type"],
            this_month=stats["this_month"],
            recent=[RecentCertificate.model_validate(c) for c in stats["recent"]],
        )
    except Exception as e:
        _internal_error(e, "fetching certificate statistics")


@router.get(
    "/verify/{certificate_number}",
    response_model=VerificationResponse,
    summary="Verify Certificate",
    description="""
Public verification of a certificate number, as encoded in the QR code.

Returns 200 for a valid certificate, 404 for an unknown or revoked one and
400 for a blank number. The body always explains the outcome.
""",
    responses={
        200: {"description": "Certificate is valid"},
        400: {"description": "Certificate number is blank"},
        404: {"description": "Certificate not found or revoked"},
    },
)
async def verify_certificate(
    certificate_number: str,
    response: Response,
    service: CertificateService = Depends(get_certificate_service),
) -> VerificationResponse:
    try:
        result = await service.verify_certificate(certificate_number)
    except Exception as e:
        _internal_error(e, "verifying certificate")

    if result.valid:
        response.status_code = status.HTTP_200_OK
    elif result.message == MESSAGE_NUMBER_REQUIRED:
        response.status_code = status.HTTP_400_BAD_REQUEST
    else:
        response.status_code = status.HTTP_404_NOT_FOUND

    return VerificationResponse(
        valid=result.valid,
        message=result.message,
        certificate=CertificateSnapshot(**result.certificate) if result.certificate else None,
        verified_at=datetime.now(UTC),
    )


@router.get(
    "/student/{student_id}",
    response_model=list[CertificateResponse],
    summary="List Student Certificates",
)
async def list_student_certificates(
    student_id: int,
    active_only: bool = Query(False, description="Only return active certificates"),
    service: CertificateService = Depends(get_certificate_service),
) -> list[CertificateResponse]:
    try:
        if active_only:
            certificates = await service.list_active_certificates_by_student(student_id)
        else:
            certificates = await service.list_certificates_by_student(student_id)
        return [CertificateResponse.model_validate(c) for c in certificates]
    except Exception as e:
        _internal_error(e, f"listing certificates for student {student_id}")


@router.get(
    "/{certificate_id}",
    response_model=CertificateResponse,
    summary="Get Certificate",
    responses={404: {"description": "Certificate not found"}},
)
async def get_certificate(
    certificate_id: int,
    service: CertificateService = Depends(get_certificate_service),
) -> CertificateResponse:
    try:
        certificate = await service.get_certificate(certificate_id)
        return CertificateResponse.model_validate(certificate)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, f"fetching certificate {certificate_id}")


@router.put(
    "/{certificate_id}/revoke",
    response_model=CertificateResponse,
    summary="Revoke Certificate",
    description="""
Revoke an active certificate. Revocation is permanent; revoking an already
revoked certificate returns 409.
""",
    responses={
        404: {"description": "Certificate not found"},
        409: {"description": "Certificate already revoked"},
    },
)
async def revoke_certificate(
    certificate_id: int,
    data: RevokeCertificateRequest,
    service: CertificateService = Depends(get_certificate_service),
) -> CertificateResponse:
    try:
        certificate = await service.revoke_certificate(
            certificate_id, revoked_by=data.revoked_by, reason=data.reason
        )
        return CertificateResponse.model_validate(certificate)
    except CertificateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        _internal_error(e, f"revoking certificate {certificate_id}")
