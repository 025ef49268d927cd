"""
Certificate Template Service

Business logic for certificate templates: creation and update with
validation, lookup, soft delete, rendering against a data map, and summary
statistics.

Validation order on create:
1. Name uniqueness (DuplicateNameError)
2. Body present (EmptyBodyError)
3. Variable list non-empty, names valid, no duplicates
4. Every declared variable appears in the body

Updates re-run steps 2-4 on the merged (incoming or existing) body and
variable list whenever either of them changes.
"""

import logging
from collections.abc import Sequence
from typing import Any

from .errors import (
    DuplicateNameError,
    InactiveTemplateError,
    TemplateNotFoundError,
)
from .models import CertificateTemplate, CertificateType
from .repository import CertificateTemplateRepository, TemplateFilters
from .templating import DataMap, ensure_required_variables, validate_template

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "type", "template_html", "variables", "is_active")


class CertificateTemplateService:
    """Operations on certificate templates."""

    def __init__(self, templates: CertificateTemplateRepository):
        self.templates = templates

    async def create_template(
        self,
        name: str,
        type: CertificateType,
        template_html: str,
        variables: Sequence[str],
        is_active: bool = True,
    ) -> CertificateTemplate:
        """
        Create a validated template.

        Raises:
            DuplicateNameError: If a template with this name exists
            TemplateValidationError: If the body or variable list is invalid
        """
        if await self.templates.exists_by_name(name):
            raise DuplicateNameError(name)

        validate_template(template_html, variables)

        template = await self.templates.create(
            name=name,
            type=type,
            template_html=template_html,
            variables=list(variables),
            is_active=is_active,
        )
        logger.info("Certificate template created: id=%s, type=%s", template.id, template.type)
        return template

    async def get_template(self, template_id: int) -> CertificateTemplate:
        template = await self.templates.get_by_id(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    async def list_templates(
        self,
        type: CertificateType | None = None,
        is_active: bool | None = None,
    ) -> list[CertificateTemplate]:
        return await self.templates.list_templates(TemplateFilters(type=type, is_active=is_active))

    async def list_active_templates_by_type(self, type: CertificateType) -> list[CertificateTemplate]:
        return await self.templates.list_active_by_type(type)

    async def update_template(self, template_id: int, changes: dict[str, Any]) -> CertificateTemplate:
        """
        Apply a partial update.

        Args:
            template_id: Template to update
            changes: Subset of name, type, template_html, variables, is_active.
                Keys with a None value are ignored.

        Raises:
            TemplateNotFoundError: If the template does not exist
            DuplicateNameError: If the new name belongs to another template
            TemplateValidationError: If the merged body/variables are invalid
        """
        template = await self.get_template(template_id)
        fields = {
            key: value
            for key, value in changes.items()
            if key in UPDATABLE_FIELDS and value is not None
        }

        new_name = fields.get("name")
        if new_name is not None and new_name != template.name:
            if await self.templates.exists_by_name(new_name, exclude_id=template_id):
                raise DuplicateNameError(new_name)

        if "template_html" in fields or "variables" in fields:
            validate_template(
                fields.get("template_html", template.template_html),
                fields.get("variables", template.variables),
            )
            if "variables" in fields:
                fields["variables"] = list(fields["variables"])

        template = await self.templates.update(template, **fields)
        logger.info("Certificate template updated: id=%s, fields=%s", template_id, sorted(fields))
        return template

    async def delete_template(self, template_id: int) -> None:
        """Soft delete: the template is deactivated, never removed."""
        if not await self.templates.soft_delete(template_id):
            raise TemplateNotFoundError(template_id)
        logger.info("Certificate template deactivated: id=%s", template_id)

    async def render_template(self, template_id: int, data: DataMap) -> str:
        """
        Render a template's body with `data`.

        Raises:
            TemplateNotFoundError: If the template does not exist
            InactiveTemplateError: If the template is deactivated
            MissingRequiredVariablesError: If `data` lacks a declared variable
        """
        template = await self.get_template(template_id)
        if not template.is_active:
            raise InactiveTemplateError("Cannot render inactive template")

        ensure_required_variables(template.variables, data)
        return template.render(data)

    async def get_template_stats(self) -> dict[str, Any]:
        """Counts of templates overall, by active flag and by type."""
        templates = await self.templates.list_templates()
        by_type: dict[str, int] = {}
        for template in templates:
            key = CertificateType(template.type).value
            by_type[key] = by_type.get(key, 0) + 1

        active = sum(1 for template in templates if template.is_active)
        return {
            "total": len(templates),
            "active": active,
            "inactive": len(templates) - active,
            "by_type": by_type,
        }
