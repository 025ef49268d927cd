"""
Certificate Template Rules

Pure functions for `{{variable}}` templates: variable-name validation,
placeholder extraction, template/variable consistency checks, and rendering.

Rendering is literal substitution. A placeholder may carry whitespace inside
the braces (`{{ student_name }}`). Placeholders that are not declared
variables render as an empty string.
"""

import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime

from .errors import (
    DuplicateVariableError,
    EmptyBodyError,
    EmptyVariableSetError,
    InvalidVariableNameError,
    MissingRequiredVariablesError,
    MissingTemplateVariablesError,
)

VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

# Closed set of values a certificate data map may carry
DataValue = str | int | float | bool | date
DataMap = Mapping[str, DataValue]


def is_valid_variable_name(name: str) -> bool:
    return bool(VARIABLE_NAME_PATTERN.match(name))


def extract_placeholders(template_html: str) -> list[str]:
    """Return placeholder names found in the body, trimmed, first occurrence order."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(template_html):
        seen.setdefault(match.group(1).strip(), None)
    return list(seen)


def validate_variables(variables: Sequence[str]) -> None:
    """
    Validate a declared variable list.

    Raises:
        EmptyVariableSetError: If the list is empty
        InvalidVariableNameError: If any name fails the identifier pattern
        DuplicateVariableError: If a name is declared twice
    """
    if not variables:
        raise EmptyVariableSetError()

    invalid = [name for name in variables if not is_valid_variable_name(name)]
    if invalid:
        raise InvalidVariableNameError(invalid)

    duplicates = sorted({name for name in variables if variables.count(name) > 1})
    if duplicates:
        raise DuplicateVariableError(duplicates)


def validate_template(template_html: str, variables: Sequence[str]) -> None:
    """
    Validate a template body against its declared variables.

    Extra placeholders in the body are allowed; declared variables that never
    appear in the body are not.
    """
    if not template_html or not template_html.strip():
        raise EmptyBodyError()

    validate_variables(variables)

    present = set(extract_placeholders(template_html))
    missing = [name for name in variables if name not in present]
    if missing:
        raise MissingTemplateVariablesError(missing)


def find_missing_variables(variables: Sequence[str], data: Mapping[str, object]) -> list[str]:
    """Declared variables with no key in `data`. An empty-string value counts as present."""
    return [name for name in variables if name not in data]


def ensure_required_variables(variables: Sequence[str], data: Mapping[str, object]) -> None:
    missing = find_missing_variables(variables, data)
    if missing:
        raise MissingRequiredVariablesError(missing)


def stringify_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def render_template(
    template_html: str,
    variables: Sequence[str],
    data: Mapping[str, object],
) -> str:
    """
    Substitute every `{{ name }}` for a name in `variables` with its value from `data`.

    All occurrences are replaced. Placeholders for names outside `variables`
    (or without a key in `data`) become empty strings.
    """
    allowed = set(variables)

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if name in allowed and name in data:
            return stringify_value(data[name])
        return ""

    return PLACEHOLDER_PATTERN.sub(_substitute, template_html)
