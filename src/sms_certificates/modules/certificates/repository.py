"""
Certificates Repository

Database operations for certificate templates and issued certificates.
Repositories wrap one AsyncSession and contain no business rules beyond the
certificate status state machine.

Every write commits immediately. A failed commit is rolled back before the
error propagates so the session stays usable. The rollback expires every
instance loaded in the session; callers refresh the ones they keep using
(`CertificateRepository.reload`).
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Certificate, CertificateStatus, CertificateTemplate, CertificateType

logger = logging.getLogger(__name__)

RECENT_CERTIFICATES_LIMIT = 5


@dataclass
class TemplateFilters:
    type: CertificateType | None = None
    is_active: bool | None = None


@dataclass
class CertificateFilters:
    student_id: int | None = None
    type: CertificateType | None = None
    status: CertificateStatus | None = None
    issued_date_from: date | None = None
    issued_date_to: date | None = None
    search: str | None = None


# Certificates only ever move ACTIVE -> REVOKED
VALID_STATUS_TRANSITIONS: dict[CertificateStatus, set[CertificateStatus]] = {
    CertificateStatus.ACTIVE: {CertificateStatus.REVOKED},
    CertificateStatus.REVOKED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid certificate status transition is attempted."""

    def __init__(self, current_status: CertificateStatus, new_status: CertificateStatus):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise


class CertificateTemplateRepository:
    """Repository for certificate template database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        *,
        name: str,
        type: CertificateType,
        template_html: str,
        variables: list[str],
        is_active: bool = True,
    ) -> CertificateTemplate:
        template = CertificateTemplate(
            name=name,
            type=type,
            template_html=template_html,
            variables=list(variables),
            is_active=is_active,
        )
        self.db.add(template)
        await _commit(self.db)
        await self.db.refresh(template)
        return template

    async def get_by_id(self, template_id: int) -> CertificateTemplate | None:
        return await self.db.get(CertificateTemplate, template_id)

    async def list_templates(self, filters: TemplateFilters | None = None) -> list[CertificateTemplate]:
        """List templates, newest first."""
        query = select(CertificateTemplate)
        if filters is not None:
            if filters.type is not None:
                query = query.where(CertificateTemplate.type == filters.type)
            if filters.is_active is not None:
                query = query.where(CertificateTemplate.is_active == filters.is_active)
        query = query.order_by(CertificateTemplate.created_at.desc(), CertificateTemplate.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_active_by_type(self, type: CertificateType) -> list[CertificateTemplate]:
        return await self.list_templates(TemplateFilters(type=type, is_active=True))

    async def update(self, template: CertificateTemplate, **fields: Any) -> CertificateTemplate:
        """Apply field changes to a loaded template and commit."""
        for key, value in fields.items():
            setattr(template, key, value)
        await _commit(self.db)
        await self.db.refresh(template)
        return template

    async def soft_delete(self, template_id: int) -> bool:
        """Deactivate a template. Returns False if it does not exist."""
        template = await self.get_by_id(template_id)
        if template is None:
            return False
        template.is_active = False
        await _commit(self.db)
        return True

    async def exists_by_name(self, name: str, exclude_id: int | None = None) -> bool:
        query = select(CertificateTemplate.id).where(CertificateTemplate.name == name)
        if exclude_id is not None:
            query = query.where(CertificateTemplate.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def count(self, filters: TemplateFilters | None = None) -> int:
        query = select(func.count(CertificateTemplate.id))
        if filters is not None:
            if filters.type is not None:
                query = query.where(CertificateTemplate.type == filters.type)
            if filters.is_active is not None:
                query = query.where(CertificateTemplate.is_active == filters.is_active)
        result = await self.db.execute(query)
        return int(result.scalar_one())


class CertificateRepository:
    """Repository for issued certificate database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **values: Any) -> Certificate:
        """
        Insert a certificate row.

        Raises:
            IntegrityError: If the certificate number is already taken
        """
        certificate = Certificate(**values)
        self.db.add(certificate)
        await _commit(self.db)
        await self.db.refresh(certificate)
        return certificate

    async def reload(self, certificates: Sequence[Certificate]) -> None:
        """Refresh committed rows expired by a rollback on this session."""
        for certificate in certificates:
            await self.db.refresh(certificate)

    async def get_by_id(self, certificate_id: int) -> Certificate | None:
        return await self.db.get(Certificate, certificate_id)

    async def get_by_number(self, certificate_number: str) -> Certificate | None:
        result = await self.db.execute(
            select(Certificate).where(Certificate.certificate_number == certificate_number)
        )
        return result.scalar_one_or_none()

    async def exists_by_number(self, certificate_number: str) -> bool:
        result = await self.db.execute(
            select(Certificate.id)
            .where(Certificate.certificate_number == certificate_number)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    def _apply_filters(self, query, filters: CertificateFilters | None):
        if filters is None:
            return query
        if filters.student_id is not None:
            query = query.where(Certificate.student_id == filters.student_id)
        if filters.type is not None:
            query = query.where(Certificate.type == filters.type)
        if filters.status is not None:
            query = query.where(Certificate.status == filters.status)
        if filters.issued_date_from is not None:
            query = query.where(Certificate.issued_date >= filters.issued_date_from)
        if filters.issued_date_to is not None:
            query = query.where(Certificate.issued_date <= filters.issued_date_to)
        if filters.search:
            query = query.where(Certificate.certificate_number.ilike(f"%{filters.search}%"))
        return query

    async def list_certificates(self, filters: CertificateFilters | None = None) -> list[Certificate]:
        """List certificates matching the filters, most recently issued first."""
        query = self._apply_filters(select(Certificate), filters).order_by(
            Certificate.issued_date.desc(), Certificate.id.desc()
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_by_student(self, student_id: int) -> list[Certificate]:
        return await self.list_certificates(CertificateFilters(student_id=student_id))

    async def list_active_by_student(self, student_id: int) -> list[Certificate]:
        return await self.list_certificates(
            CertificateFilters(student_id=student_id, status=CertificateStatus.ACTIVE)
        )

    async def count(self, filters: CertificateFilters | None = None) -> int:
        query = self._apply_filters(select(func.count(Certificate.id)), filters)
        result = await self.db.execute(query)
        return int(result.scalar_one())

    async def update_status(
        self,
        certificate: Certificate,
        status: CertificateStatus,
        **fields: Any,
    ) -> Certificate:
        """
        Move a loaded certificate to a new status and commit.

        Raises:
            InvalidStatusTransitionError: If the state machine forbids the move
        """
        current = CertificateStatus(certificate.status)
        if status not in VALID_STATUS_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransitionError(current, status)

        certificate.status = status
        for key, value in fields.items():
            setattr(certificate, key, value)

        await _commit(self.db)
        await self.db.refresh(certificate)
        return certificate

    async def revoke(
        self,
        certificate: Certificate,
        *,
        revoked_by: int,
        reason: str | None,
        revoked_at: datetime | None = None,
    ) -> Certificate:
        """Revoke a certificate, stamping all revocation fields together."""
        return await self.update_status(
            certificate,
            CertificateStatus.REVOKED,
            revoked_at=revoked_at or datetime.now(UTC),
            revoked_by=revoked_by,
            revoked_reason=reason,
        )

    async def get_stats(self, today: date | None = None) -> dict[str, Any]:
        """
        Aggregate certificate counts.

        Returns:
            Dict with total, active, revoked, by_type, this_month and the most
            recently issued certificates
        """
        today = today or datetime.now(UTC).date()
        month_start = today.replace(day=1)

        status_rows = await self.db.execute(
            select(Certificate.status, func.count(Certificate.id)).group_by(Certificate.status)
        )
        by_status = {CertificateStatus(status): count for status, count in status_rows.all()}

        type_rows = await self.db.execute(
            select(Certificate.type, func.count(Certificate.id)).group_by(Certificate.type)
        )
        by_type = {CertificateType(type_).value: count for type_, count in type_rows.all()}

        this_month = await self.db.execute(
            select(func.count(Certificate.id)).where(Certificate.issued_date >= month_start)
        )

        recent_rows = await self.db.execute(
            select(Certificate)
            .order_by(Certificate.created_at.desc(), Certificate.id.desc())
            .limit(RECENT_CERTIFICATES_LIMIT)
        )

        return {
            "total": sum(by_status.values()),
            "active": by_status.get(CertificateStatus.ACTIVE, 0),
            "revoked": by_status.get(CertificateStatus.REVOKED, 0),
            "by_type": by_type,
            "this_month": int(this_month.scalar_one()),
            "recent": list(recent_rows.scalars().all()),
        }
