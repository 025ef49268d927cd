"""
Certificate Service Layer

Business logic for issuing, verifying and revoking certificates.
Orchestrates the template store, number generation, QR artifacts, document
production and persistence.

This module implements:
1. Generation Flow:
   - Load the template and reject unknown or inactive ones
   - Check every declared variable has a key in the data map
   - Resolve the issue date (AD) and its Bikram Sambat equivalent
   - Reserve a unique certificate number
   - Build the verification URL and its QR code
   - Render the template with the data plus system fields
   - Produce and store the PDF
   - Persist the certificate as ACTIVE

2. Bulk Generation:
   - Template is loaded and checked once; template errors abort the batch
   - Items are processed sequentially with one shared issue date
   - Each item commits on its own; failures are recorded and the loop goes on

3. Verification:
   - Never raises for blank, unknown, revoked or active numbers
   - Returns the same certificate snapshot shape for valid and revoked results

4. Revocation:
   - ACTIVE -> REVOKED only; revoking twice raises AlreadyRevokedError

Nothing is persisted for a certificate unless its document was produced, and
a document whose row could not be written is removed again.
Certificate data maps are never logged.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .calendar import BSDateConverter, format_display_date
from .documents import DocumentProducer
from .errors import (
    AlreadyRevokedError,
    CertificateNotFoundError,
    CertificatePersistenceError,
    CertificateServiceError,
    InactiveTemplateError,
    TemplateNotFoundError,
)
from .models import Certificate, CertificateStatus, CertificateTemplate, CertificateType
from .numbering import CertificateNumberGenerator
from .repository import CertificateFilters, CertificateRepository, CertificateTemplateRepository
from .templating import DataMap, ensure_required_variables, render_template
from .verification import VerificationArtifactBuilder, build_verification_url

logger = logging.getLogger(__name__)

# Names added to the data map at render time; templates may use them without declaring them
SYSTEM_VARIABLES = (
    "certificate_number",
    "issued_date",
    "issued_date_bs",
    "qr_code",
    "verification_url",
)

MESSAGE_NUMBER_REQUIRED = "Certificate number is required"
MESSAGE_NOT_FOUND = "Certificate not found. Please verify the certificate number and try again."
MESSAGE_VALID = "Certificate is valid and authentic"
REASON_NOT_SPECIFIED = "Not specified"


@dataclass
class StudentCertificateRequest:
    """One item of a bulk generation request."""

    student_id: int
    data: DataMap


@dataclass
class BulkFailure:
    student_id: int
    error: str


@dataclass
class BulkGenerationResult:
    success: list[Certificate] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)


@dataclass(frozen=True)
class IssuableTemplate:
    """Plain copy of the template fields used while issuing."""

    id: int
    type: CertificateType
    template_html: str
    variables: tuple[str, ...]

    @classmethod
    def from_model(cls, template: CertificateTemplate) -> "IssuableTemplate":
        return cls(
            id=template.id,
            type=CertificateType(template.type),
            template_html=template.template_html,
            variables=tuple(template.variables),
        )

    def render(self, data: Mapping[str, Any]) -> str:
        return render_template(self.template_html, [*self.variables, *SYSTEM_VARIABLES], data)


@dataclass
class VerificationResult:
    valid: bool
    message: str
    certificate: dict[str, Any] | None = None


def to_json_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Copy a data map into JSON-storable form (dates become ISO strings)."""
    return {
        key: value.isoformat() if isinstance(value, datetime | date) else value
        for key, value in data.items()
    }


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def certificate_snapshot(certificate: Certificate) -> dict[str, Any]:
    """Public view of a certificate returned by verification."""
    snapshot: dict[str, Any] = {
        "certificate_number": certificate.certificate_number,
        "type": certificate.type,
        "student_id": certificate.student_id,
        "issued_date": certificate.issued_date,
        "issued_date_bs": certificate.issued_date_bs,
        "data": certificate.data,
        "status": certificate.status,
        "verification_url": certificate.verification_url,
    }
    if certificate.revoked_at is not None:
        snapshot["revoked_at"] = certificate.revoked_at
    if certificate.revoked_reason is not None:
        snapshot["revoked_reason"] = certificate.revoked_reason
    return snapshot


def revocation_message(certificate: Certificate) -> str:
    on_clause = (
        f" on {format_display_date(_as_date(certificate.revoked_at))}"
        if certificate.revoked_at is not None
        else ""
    )
    reason = certificate.revoked_reason or REASON_NOT_SPECIFIED
    return f"Certificate has been revoked{on_clause}. Reason: {reason}"


def _default_clock() -> datetime:
    return datetime.now(UTC)


class CertificateService:
    """
    Certificate lifecycle operations.

    Args:
        certificates: Certificate persistence
        templates: Template persistence
        number_generator: Unique certificate number source
        artifact_builder: QR code builder for verification URLs
        document_producer: PDF producer and store
        date_converter: AD to BS converter
        base_url: Public base URL for verification links
        clock: Current time source; defaults to UTC now
    """

    def __init__(
        self,
        certificates: CertificateRepository,
        templates: CertificateTemplateRepository,
        number_generator: CertificateNumberGenerator,
        artifact_builder: VerificationArtifactBuilder,
        document_producer: DocumentProducer,
        date_converter: BSDateConverter,
        base_url: str,
        clock: Callable[[], datetime] = _default_clock,
    ):
        self.certificates = certificates
        self.templates = templates
        self.number_generator = number_generator
        self.artifact_builder = artifact_builder
        self.document_producer = document_producer
        self.date_converter = date_converter
        self.base_url = base_url
        self.clock = clock

    # -----------------------------------------------------------------
    # Generation
    # -----------------------------------------------------------------

    async def _load_issuable_template(self, template_id: int) -> IssuableTemplate:
        template = await self.templates.get_by_id(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        if not template.is_active:
            raise InactiveTemplateError()
        return IssuableTemplate.from_model(template)

    def _resolve_dates(
        self,
        issued_date: date | datetime | None,
        issued_date_bs: str | None,
    ) -> tuple[date, str]:
        resolved = _as_date(issued_date) if issued_date is not None else self.clock().date()
        resolved_bs = issued_date_bs or self.date_converter.to_bs(resolved)
        return resolved, resolved_bs

    async def _issue(
        self,
        template: IssuableTemplate,
        student_id: int,
        data: DataMap,
        issued_by: int,
        issued_date: date,
        issued_date_bs: str,
    ) -> Certificate:
        ensure_required_variables(template.variables, data)

        certificate_number = await self.number_generator.next_number(template.type)
        verification_url = build_verification_url(self.base_url, certificate_number)
        qr_code = self.artifact_builder.build_scannable_artifact(verification_url)

        render_data = {
            **data,
            "certificate_number": certificate_number,
            "issued_date": format_display_date(issued_date),
            "issued_date_bs": issued_date_bs,
            "qr_code": qr_code,
            "verification_url": verification_url,
        }
        rendered_html = template.render(render_data)

        pdf_url = await self.document_producer.produce(certificate_number, rendered_html, qr_code)

        try:
            certificate = await self.certificates.create(
                certificate_number=certificate_number,
                template_id=template.id,
                student_id=student_id,
                type=template.type,
                issued_date=issued_date,
                issued_date_bs=issued_date_bs,
                data=to_json_data(data),
                pdf_url=pdf_url,
                qr_code=qr_code,
                verification_url=verification_url,
                issued_by=issued_by,
                status=CertificateStatus.ACTIVE,
            )
        except SQLAlchemyError as e:
            logger.error("Failed to save certificate %s: %s", certificate_number, e)
            # On a duplicate number the stored file belongs to the existing certificate
            if not isinstance(e, IntegrityError):
                await self.document_producer.discard(certificate_number)
            raise CertificatePersistenceError(certificate_number) from e

        logger.info(
            "Certificate issued: number=%s, template_id=%s, student_id=%s",
            certificate_number,
            template.id,
            student_id,
        )
        return certificate

    async def generate_certificate(
        self,
        template_id: int,
        student_id: int,
        data: DataMap,
        issued_by: int,
        issued_date: date | datetime | None = None,
        issued_date_bs: str | None = None,
    ) -> Certificate:
        """
        Issue one certificate from a template.

        Raises:
            TemplateNotFoundError: If the template does not exist
            InactiveTemplateError: If the template is deactivated
            MissingRequiredVariablesError: If `data` lacks declared variables
            DateConversionError: If the BS date cannot be computed
            IdentifierExhaustionError: If no unique number could be found
            ArtifactGenerationError: If the QR code could not be built
            DocumentProductionError: If the PDF could not be produced
            CertificatePersistenceError: If the row could not be written
        """
        template = await self._load_issuable_template(template_id)
        # Fail on missing variables before doing any date work
        ensure_required_variables(template.variables, data)
        resolved_date, resolved_bs = self._resolve_dates(issued_date, issued_date_bs)
        return await self._issue(
            template, student_id, data, issued_by, resolved_date, resolved_bs
        )

    async def bulk_generate_certificates(
        self,
        template_id: int,
        students: Sequence[StudentCertificateRequest],
        issued_by: int,
        issued_date: date | datetime | None = None,
        issued_date_bs: str | None = None,
    ) -> BulkGenerationResult:
        """
        Issue certificates for many students from one template.

        Template problems abort the whole batch. Any other failure is recorded
        against its student and the batch continues; results keep input order.
        """
        result = BulkGenerationResult()
        if not students:
            return result

        template = await self._load_issuable_template(template_id)
        resolved_date, resolved_bs = self._resolve_dates(issued_date, issued_date_bs)

        for item in students:
            try:
                certificate = await self._issue(
                    template, item.student_id, item.data, issued_by, resolved_date, resolved_bs
                )
            except CertificateServiceError as e:
                if isinstance(e, CertificatePersistenceError):
                    # The rollback expired every row loaded in this session
                    await self.certificates.reload(result.success)
                logger.warning(
                    "Bulk generation failed for student %s: %s", item.student_id, e.error_code
                )
                result.failed.append(BulkFailure(student_id=item.student_id, error=e.message))
            except Exception as e:
                logger.exception("Unexpected error generating certificate for student %s", item.student_id)
                result.failed.append(BulkFailure(student_id=item.student_id, error=str(e)))
            else:
                result.success.append(certificate)

        logger.info(
            "Bulk generation finished: template_id=%s, success=%d, failed=%d",
            template_id,
            len(result.success),
            len(result.failed),
        )
        return result

    # -----------------------------------------------------------------
    # Verification & revocation
    # -----------------------------------------------------------------

    async def verify_certificate(self, certificate_number: str | None) -> VerificationResult:
        """Check a certificate number. Never raises for unknown or revoked numbers."""
        number = (certificate_number or "").strip()
        if not number:
            return VerificationResult(valid=False, message=MESSAGE_NUMBER_REQUIRED)

        certificate = await self.certificates.get_by_number(number)
        if certificate is None:
            return VerificationResult(valid=False, message=MESSAGE_NOT_FOUND)

        snapshot = certificate_snapshot(certificate)
        if certificate.status == CertificateStatus.REVOKED:
            return VerificationResult(
                valid=False, message=revocation_message(certificate), certificate=snapshot
            )

        return VerificationResult(valid=True, message=MESSAGE_VALID, certificate=snapshot)

    async def revoke_certificate(
        self,
        certificate_id: int,
        revoked_by: int,
        reason: str | None,
    ) -> Certificate:
        """
        Revoke an active certificate.

        Raises:
            CertificateNotFoundError: If the certificate does not exist
            AlreadyRevokedError: If it was revoked before
        """
        certificate = await self.get_certificate(certificate_id)
        if certificate.status == CertificateStatus.REVOKED:
            raise AlreadyRevokedError(certificate.certificate_number)

        certificate = await self.certificates.revoke(
            certificate,
            revoked_by=revoked_by,
            reason=reason,
            revoked_at=self.clock(),
        )
        logger.info(
            "Certificate revoked: number=%s, revoked_by=%s",
            certificate.certificate_number,
            revoked_by,
        )
        return certificate

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    async def get_certificate(self, certificate_id: int) -> Certificate:
        certificate = await self.certificates.get_by_id(certificate_id)
        if certificate is None:
            raise CertificateNotFoundError(certificate_id=certificate_id)
        return certificate

    async def get_certificate_by_number(self, certificate_number: str) -> Certificate:
        certificate = await self.certificates.get_by_number(certificate_number)
        if certificate is None:
            raise CertificateNotFoundError(certificate_number=certificate_number)
        return certificate

    async def list_certificates(self, filters: CertificateFilters | None = None) -> list[Certificate]:
        return await self.certificates.list_certificates(filters)

    async def list_certificates_by_student(self, student_id: int) -> list[Certificate]:
        return await self.certificates.list_by_student(student_id)

    async def list_active_certificates_by_student(self, student_id: int) -> list[Certificate]:
        return await self.certificates.list_active_by_student(student_id)

    async def get_certificate_stats(self) -> dict[str, Any]:
        return await self.certificates.get_stats(self.clock().date())
