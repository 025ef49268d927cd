"""
Repository tests against an in-memory SQLite database.
"""

import typing
from datetime import UTC, date, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from sms_certificates.modules.certificates.models import (
    Certificate,
    CertificateStatus,
    CertificateTemplate,
    CertificateType,
)
from sms_certificates.modules.certificates.repository import (
    VALID_STATUS_TRANSITIONS,
    CertificateFilters,
    CertificateRepository,
    CertificateTemplateRepository,
    InvalidStatusTransitionError,
    TemplateFilters,
)


async def create_template(db, name="Character Certificate", type=CertificateType.CHARACTER, **kw):
    return await CertificateTemplateRepository(db).create(
        name=name,
        type=type,
        template_html="<p>{{student_name}}</p>",
        variables=["student_name"],
        **kw,
    )


async def create_certificate(db, template, number, **overrides):
    values = {
        "certificate_number": number,
        "template_id": template.id,
        "student_id": 1,
        "type": template.type,
        "issued_date": date(2024, 2, 1),
        "issued_date_bs": "2080-10-18",
        "data": {"student_name": "John Doe"},
        "pdf_url": f"/uploads/certificates/{number}.pdf",
        "qr_code": "data:image/png;base64,iVBORw0KGgo=",
        "verification_url": f"https://school.example.com/api/v1/certificates/verify/{number}",
        "issued_by": 1,
        "status": CertificateStatus.ACTIVE,
    }
    values.update(overrides)
    return await CertificateRepository(db).create(**values)


class TestStatusTransitions:
    """Tests for the certificate status state machine."""

    def test_active_can_be_revoked(self):
        assert CertificateStatus.REVOKED in VALID_STATUS_TRANSITIONS[CertificateStatus.ACTIVE]

    def test_revoked_is_terminal(self):
        assert VALID_STATUS_TRANSITIONS[CertificateStatus.REVOKED] == set()

    def test_error_message(self):
        error = InvalidStatusTransitionError(CertificateStatus.REVOKED, CertificateStatus.ACTIVE)
        assert "revoked -> active" in str(error)


class TestRepositoryInterface:
    """Tests for repository method signatures."""

    def test_list_annotations_resolve_to_builtin_list(self):
        assert typing.get_type_hints(CertificateTemplateRepository.list_active_by_type)[
            "return"
        ] == list[CertificateTemplate]
        assert typing.get_type_hints(CertificateRepository.list_by_student)["return"] == (
            list[Certificate]
        )

    def test_no_method_shadows_list(self):
        assert not hasattr(CertificateTemplateRepository, "list")
        assert not hasattr(CertificateRepository, "list")


class TestCertificateTemplateRepository:
    """Tests for template persistence."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, db_session):
        template = await create_template(db_session)

        loaded = await CertificateTemplateRepository(db_session).get_by_id(template.id)

        assert loaded.name == "Character Certificate"
        assert loaded.variables == ["student_name"]
        assert loaded.is_active is True

    @pytest.mark.asyncio
    async def test_name_is_unique(self, db_session):
        await create_template(db_session)

        with pytest.raises(IntegrityError):
            await create_template(db_session)

    @pytest.mark.asyncio
    async def test_exists_by_name_excludes_self(self, db_session):
        repo = CertificateTemplateRepository(db_session)
        template = await create_template(db_session)

        assert await repo.exists_by_name("Character Certificate") is True
        assert await repo.exists_by_name("Character Certificate", exclude_id=template.id) is False
        assert await repo.exists_by_name("Other") is False

    @pytest.mark.asyncio
    async def test_filters_and_soft_delete(self, db_session):
        repo = CertificateTemplateRepository(db_session)
        character = await create_template(db_session)
        await create_template(db_session, name="Sports Day", type=CertificateType.SPORTS)

        assert await repo.soft_delete(character.id) is True
        assert await repo.soft_delete(9999) is False

        active = await repo.list_templates(TemplateFilters(is_active=True))
        assert [t.name for t in active] == ["Sports Day"]
        assert await repo.list_active_by_type(CertificateType.CHARACTER) == []
        assert await repo.count() == 2
        assert await repo.count(TemplateFilters(type=CertificateType.SPORTS)) == 1

    @pytest.mark.asyncio
    async def test_update(self, db_session):
        repo = CertificateTemplateRepository(db_session)
        template = await create_template(db_session)

        updated = await repo.update(template, name="Good Character", is_active=False)

        assert updated.name == "Good Character"
        assert updated.is_active is False


class TestCertificateRepository:
    """Tests for issued certificate persistence."""

    @pytest.mark.asyncio
    async def test_create_and_lookup(self, db_session):
        template = await create_template(db_session)
        repo = CertificateRepository(db_session)
        certificate = await create_certificate(db_session, template, "CERT-CHAR-2024-0001")

        assert (await repo.get_by_id(certificate.id)).certificate_number == "CERT-CHAR-2024-0001"
        assert (await repo.get_by_number("CERT-CHAR-2024-0001")).id == certificate.id
        assert await repo.get_by_number("CERT-CHAR-2024-0002") is None
        assert await repo.exists_by_number("CERT-CHAR-2024-0001") is True
        assert await repo.exists_by_number("CERT-CHAR-2024-0002") is False

    @pytest.mark.asyncio
    async def test_duplicate_number_rejected_and_session_usable(self, db_session):
        template = await create_template(db_session)
        repo = CertificateRepository(db_session)
        first = await create_certificate(db_session, template, "CERT-CHAR-2024-0001")

        with pytest.raises(IntegrityError):
            await create_certificate(db_session, template, "CERT-CHAR-2024-0001")

        # The rollback expired loaded rows; reload them before reading
        await repo.reload([first])
        await db_session.refresh(template)
        assert first.certificate_number == "CERT-CHAR-2024-0001"

        await create_certificate(db_session, template, "CERT-CHAR-2024-0002")
        assert await repo.count() == 2

    @pytest.mark.asyncio
    async def test_list_filters(self, db_session):
        template = await create_template(db_session)
        repo = CertificateRepository(db_session)
        await create_certificate(
            db_session, template, "CERT-CHAR-2024-0001", issued_date=date(2024, 1, 10)
        )
        await create_certificate(
            db_session, template, "CERT-CHAR-2024-0002", student_id=2, issued_date=date(2024, 2, 1)
        )
        await create_certificate(
            db_session,
            template,
            "CERT-CHAR-2023-0003",
            issued_date=date(2023, 6, 1),
            status=CertificateStatus.REVOKED,
        )

        everything = await repo.list_certificates()
        assert [c.certificate_number for c in everything] == [
            "CERT-CHAR-2024-0002",
            "CERT-CHAR-2024-0001",
            "CERT-CHAR-2023-0003",
        ]

        by_student = await repo.list_by_student(1)
        assert {c.certificate_number for c in by_student} == {
            "CERT-CHAR-2024-0001",
            "CERT-CHAR-2023-0003",
        }
        active = await repo.list_active_by_student(1)
        assert [c.certificate_number for c in active] == ["CERT-CHAR-2024-0001"]

        in_range = await repo.list_certificates(
            CertificateFilters(issued_date_from=date(2024, 1, 1), issued_date_to=date(2024, 1, 31))
        )
        assert [c.certificate_number for c in in_range] == ["CERT-CHAR-2024-0001"]

        searched = await repo.list_certificates(CertificateFilters(search="2023"))
        assert [c.certificate_number for c in searched] == ["CERT-CHAR-2023-0003"]
        assert await repo.count(CertificateFilters(status=CertificateStatus.ACTIVE)) == 2

    @pytest.mark.asyncio
    async def test_revoke_stamps_fields(self, db_session):
        template = await create_template(db_session)
        repo = CertificateRepository(db_session)
        certificate = await create_certificate(db_session, template, "CERT-CHAR-2024-0001")

        revoked = await repo.revoke(
            certificate,
            revoked_by=7,
            reason="Issued in error",
            revoked_at=datetime(2024, 2, 2, 10, 0, tzinfo=UTC),
        )

        assert revoked.status == CertificateStatus.REVOKED
        assert revoked.revoked_by == 7
        assert revoked.revoked_reason == "Issued in error"
        assert revoked.revoked_at is not None

    @pytest.mark.asyncio
    async def test_revoked_cannot_move_again(self, db_session):
        template = await create_template(db_session)
        repo = CertificateRepository(db_session)
        certificate = await create_certificate(
            db_session, template, "CERT-CHAR-2024-0001", status=CertificateStatus.REVOKED
        )

        with pytest.raises(InvalidStatusTransitionError):
            await repo.revoke(certificate, revoked_by=7, reason=None)

    @pytest.mark.asyncio
    async def test_stats(self, db_session):
        character = await create_template(db_session)
        sports = await create_template(db_session, name="Sports Day", type=CertificateType.SPORTS)
        repo = CertificateRepository(db_session)
        await create_certificate(db_session, character, "CERT-CHAR-2024-0001")
        await create_certificate(
            db_session, character, "CERT-CHAR-2024-0002", status=CertificateStatus.REVOKED
        )
        await create_certificate(
            db_session, sports, "CERT-SPRT-2024-0003", issued_date=date(2024, 1, 15)
        )

        stats = await repo.get_stats(date(2024, 2, 20))

        assert stats["total"] == 3
        assert stats["active"] == 2
        assert stats["revoked"] == 1
        assert stats["by_type"] == {"character": 2, "sports": 1}
        assert stats["this_month"] == 2
        assert len(stats["recent"]) == 3

    @pytest.mark.asyncio
    async def test_stats_empty(self, db_session):
        stats = await CertificateRepository(db_session).get_stats(date(2024, 2, 20))

        assert stats == {
            "total": 0,
            "active": 0,
            "revoked": 0,
            "by_type": {},
            "this_month": 0,
            "recent": [],
        }
