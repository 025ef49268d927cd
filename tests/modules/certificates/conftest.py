"""
Fixtures for certificates tests.
"""

import base64
import io
import itertools
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sms_certificates.core.database import Base
from sms_certificates.modules.certificates.models import (
    Certificate,
    CertificateStatus,
    CertificateTemplate,
    CertificateType,
)
from sms_certificates.modules.certificates.numbering import CertificateNumberGenerator
from sms_certificates.modules.certificates.service import CertificateService
from sms_certificates.modules.certificates.template_service import CertificateTemplateService

FIXED_NOW = datetime(2024, 2, 1, 9, 30, tzinfo=UTC)
BASE_URL = "https://school.example.com"
FAKE_QR = "data:image/png;base64,iVBORw0KGgo="

CHARACTER_HTML = (
    "<p>This certifies that <b>{{student_name}}</b> of class {{ class }} "
    "has good character.</p><p>No. {{certificate_number}} issued {{issued_date}}</p>"
)


def make_template(**overrides) -> CertificateTemplate:
    """Build an unsaved template with sensible defaults."""
    values = {
        "id": 1,
        "name": "Character Certificate",
        "type": CertificateType.CHARACTER,
        "template_html": CHARACTER_HTML,
        "variables": ["student_name", "class"],
        "is_active": True,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    values.update(overrides)
    return CertificateTemplate(**values)


def make_certificate(**overrides) -> Certificate:
    """Build an unsaved certificate with sensible defaults."""
    values = {
        "id": 1,
        "certificate_number": "CERT-CHAR-2024-0001",
        "template_id": 1,
        "student_id": 1,
        "type": CertificateType.CHARACTER,
        "issued_date": date(2024, 2, 1),
        "issued_date_bs": "2080-10-18",
        "data": {"student_name": "John Doe", "class": "10"},
        "pdf_url": "/uploads/certificates/CERT-CHAR-2024-0001.pdf",
        "qr_code": FAKE_QR,
        "verification_url": f"{BASE_URL}/api/v1/certificates/verify/CERT-CHAR-2024-0001",
        "issued_by": 1,
        "status": CertificateStatus.ACTIVE,
        "revoked_at": None,
        "revoked_by": None,
        "revoked_reason": None,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    values.update(overrides)
    return Certificate(**values)


def make_png_data_uri(size: int = 40) -> str:
    """A small real PNG image as a data URI."""
    buffer = io.BytesIO()
    Image.new("RGB", (size, size), "black").save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def sample_template():
    """An active character template declaring student_name and class."""
    return make_template()


@pytest.fixture
def inactive_template():
    return make_template(id=2, name="Old Character Certificate", is_active=False)


@pytest.fixture
def sample_certificate():
    return make_certificate()


@pytest.fixture
def revoked_certificate():
    return make_certificate(
        id=2,
        certificate_number="CERT-CHAR-2024-0002",
        status=CertificateStatus.REVOKED,
        revoked_at=datetime(2024, 2, 1, tzinfo=UTC),
        revoked_by=7,
        revoked_reason="Student transferred",
    )


@pytest.fixture
def mock_template_repo():
    """Mock template repository."""
    repo = AsyncMock()

    async def update(template, **fields):
        for key, value in fields.items():
            setattr(template, key, value)
        return template

    repo.exists_by_name = AsyncMock(return_value=False)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.create = AsyncMock(side_effect=lambda **values: make_template(**values))
    repo.update = AsyncMock(side_effect=update)
    repo.soft_delete = AsyncMock(return_value=True)
    repo.list_templates = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_certificate_repo():
    """Mock certificate repository that echoes created rows back."""
    repo = AsyncMock()
    counter = itertools.count(1)

    async def create(**values):
        return make_certificate(id=next(counter), **{k: v for k, v in values.items() if k != "id"})

    repo.create = AsyncMock(side_effect=create)
    repo.exists_by_number = AsyncMock(return_value=False)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.get_by_number = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def sequence_source():
    """Deterministic random source yielding 1, 2, 3, ..."""
    counter = itertools.count(1)
    return lambda: next(counter)


@pytest.fixture
def mock_artifact_builder():
    builder = MagicMock()
    builder.build_scannable_artifact = MagicMock(return_value=FAKE_QR)
    return builder


@pytest.fixture
def mock_document_producer():
    producer = AsyncMock()
    producer.produce = AsyncMock(
        side_effect=lambda number, html, artifact: f"/uploads/certificates/{number}.pdf"
    )
    producer.discard = AsyncMock(return_value=True)
    return producer


@pytest.fixture
def mock_date_converter():
    converter = MagicMock()
    converter.to_bs = MagicMock(return_value="2080-10-18")
    return converter


@pytest.fixture
def template_service(mock_template_repo):
    return CertificateTemplateService(mock_template_repo)


@pytest.fixture
def certificate_service(
    mock_certificate_repo,
    mock_template_repo,
    sequence_source,
    mock_artifact_builder,
    mock_document_producer,
    mock_date_converter,
):
    """Certificate service wired to mocks, with a fixed clock and deterministic numbers."""
    number_generator = CertificateNumberGenerator(
        exists=mock_certificate_repo.exists_by_number,
        random_source=sequence_source,
        clock=lambda: FIXED_NOW,
    )
    return CertificateService(
        certificates=mock_certificate_repo,
        templates=mock_template_repo,
        number_generator=number_generator,
        artifact_builder=mock_artifact_builder,
        document_producer=mock_document_producer,
        date_converter=mock_date_converter,
        base_url=BASE_URL,
        clock=lambda: FIXED_NOW,
    )


@pytest_asyncio.fixture
async def db_session():
    """A fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def template_factory():
    """Factory for unsaved templates."""
    return make_template


@pytest.fixture
def certificate_factory():
    """Factory for unsaved certificates."""
    return make_certificate


@pytest.fixture
def png_data_uri():
    """Factory for small real PNG data URIs."""
    return make_png_data_uri
