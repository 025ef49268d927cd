"""
Certificates Dependencies

FastAPI dependency factories that wire repositories and collaborators into
the certificate services for each request. Tests replace these through
`app.dependency_overrides`.
"""

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from sms_certificates.core.config import Settings, get_settings
from sms_certificates.core.database import get_db
from sms_certificates.core.redis import get_redis
from sms_certificates.core.storage import FileStorage

from .calendar import BikramSambatConverter
from .documents import DocumentProducer, PdfRenderer
from .numbering import CertificateNumberGenerator, RedisNumberReservation
from .repository import CertificateRepository, CertificateTemplateRepository
from .service import CertificateService
from .template_service import CertificateTemplateService
from .verification import QRCodeEncoder, VerificationArtifactBuilder


def get_template_repository(db: AsyncSession = Depends(get_db)) -> CertificateTemplateRepository:
    return CertificateTemplateRepository(db)


def get_certificate_repository(db: AsyncSession = Depends(get_db)) -> CertificateRepository:
    return CertificateRepository(db)


def get_template_service(
    templates: CertificateTemplateRepository = Depends(get_template_repository),
) -> CertificateTemplateService:
    return CertificateTemplateService(templates)


def build_document_producer(settings: Settings) -> DocumentProducer:
    return DocumentProducer(
        renderer=PdfRenderer(),
        storage=FileStorage(),
        upload_dir=settings.certificate_upload_dir,
        public_prefix=settings.certificate_public_prefix,
        school_name=settings.school_name,
    )


def build_artifact_builder(settings: Settings) -> VerificationArtifactBuilder:
    return VerificationArtifactBuilder(
        QRCodeEncoder(
            error_correction=settings.qr_error_correction,
            size=settings.qr_size,
            margin=settings.qr_margin,
        )
    )


def get_certificate_service(
    certificates: CertificateRepository = Depends(get_certificate_repository),
    templates: CertificateTemplateRepository = Depends(get_template_repository),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> CertificateService:
    """Certificate service with the default collaborators for this request."""
    reservation = (
        RedisNumberReservation(redis, settings.certificate_number_reservation_seconds)
        if redis is not None
        else None
    )
    number_generator = CertificateNumberGenerator(
        exists=certificates.exists_by_number,
        max_attempts=settings.certificate_number_max_attempts,
        reservation=reservation,
    )
    return CertificateService(
        certificates=certificates,
        templates=templates,
        number_generator=number_generator,
        artifact_builder=build_artifact_builder(settings),
        document_producer=build_document_producer(settings),
        date_converter=BikramSambatConverter(),
        base_url=settings.public_base_url,
    )
