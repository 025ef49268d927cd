"""
Seed Certificate Templates

Creates a default set of certificate templates for a new installation.
Templates that already exist (by name) are left untouched.

Usage:
    python scripts/seed_certificate_templates.py
"""

import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sms_certificates.core.config import settings
from sms_certificates.modules.certificates.errors import DuplicateNameError
from sms_certificates.modules.certificates.models import CertificateType
from sms_certificates.modules.certificates.repository import CertificateTemplateRepository
from sms_certificates.modules.certificates.template_service import CertificateTemplateService

DEFAULT_TEMPLATES = [
    {
        "name": "Character Certificate",
        "type": CertificateType.CHARACTER,
        "template_html": (
            "<p>This is to certify that <strong>{{student_name}}</strong>, a student of "
            "class {{class}}, bears a good moral character.</p>"
            "<p>Issued on {{issued_date}} ({{issued_date_bs}} BS). "
            "Certificate No. {{certificate_number}}</p>"
        ),
        "variables": ["student_name", "class"],
    },
    {
        "name": "Transfer Certificate",
        "type": CertificateType.TRANSFER,
        "template_html": (
            "<p>This is to certify that <strong>{{student_name}}</strong> studied in class "
            "{{class}} and left the school on {{leaving_date}}.</p>"
            "<p>Reason for leaving: {{reason}}</p>"
        ),
        "variables": ["student_name", "class", "leaving_date", "reason"],
    },
    {
        "name": "Academic Excellence Certificate",
        "type": CertificateType.ACADEMIC_EXCELLENCE,
        "template_html": (
            "<p>Awarded to <strong>{{student_name}}</strong> of class {{class}} for securing "
            "{{position}} position with GPA {{gpa}} in {{academic_year}}.</p>"
        ),
        "variables": ["student_name", "class", "position", "gpa", "academic_year"],
    },
    {
        "name": "ECA Participation Certificate",
        "type": CertificateType.ECA,
        "template_html": (
            "<p>This certifies that <strong>{{student_name}}</strong> participated in "
            "{{activity_name}} and achieved {{achievement}}.</p>"
        ),
        "variables": ["student_name", "activity_name", "achievement"],
    },
    {
        "name": "Sports Achievement Certificate",
        "type": CertificateType.SPORTS,
        "template_html": (
            "<p>Awarded to <strong>{{student_name}}</strong> for {{achievement}} in "
            "{{sport_name}} at {{event_name}}.</p>"
        ),
        "variables": ["student_name", "sport_name", "event_name", "achievement"],
    },
    {
        "name": "Bonafide Certificate",
        "type": CertificateType.BONAFIDE,
        "template_html": (
            "<p>This is to certify that <strong>{{student_name}}</strong> is a bonafide "
            "student of this school, studying in class {{class}} for the academic year "
            "{{academic_year}}.</p>"
        ),
        "variables": ["student_name", "class", "academic_year"],
    },
]


async def seed_certificate_templates() -> None:
    """Create the default templates that don't exist yet."""

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        service = CertificateTemplateService(CertificateTemplateRepository(db))

        for definition in DEFAULT_TEMPLATES:
            try:
                template = await service.create_template(**definition)
            except DuplicateNameError:
                print(f"Template already exists: {definition['name']}")
                continue

            print(f"Template created: {template.name}")
            print(f"  ID: {template.id}")
            print(f"  Type: {template.type.value}")
            print(f"  Variables: {', '.join(template.variables)}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_certificate_templates())
