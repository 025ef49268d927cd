"""
Unit tests for certificate template rules.

These tests cover:
- Variable name validation
- Placeholder extraction
- Template/variable consistency checks and their order
- Rendering
"""

from datetime import date

import pytest

from sms_certificates.modules.certificates.errors import (
    DuplicateVariableError,
    EmptyBodyError,
    EmptyVariableSetError,
    InvalidVariableNameError,
    MissingRequiredVariablesError,
    MissingTemplateVariablesError,
)
from sms_certificates.modules.certificates.templating import (
    ensure_required_variables,
    extract_placeholders,
    find_missing_variables,
    is_valid_variable_name,
    render_template,
    validate_template,
)


class TestVariableNames:
    """Tests for the variable name pattern."""

    @pytest.mark.parametrize("name", ["student_name", "_private", "Class10", "x"])
    def test_valid_names(self, name):
        assert is_valid_variable_name(name)

    @pytest.mark.parametrize("name", ["1st", "student-name", "student name", "", "ñame"])
    def test_invalid_names(self, name):
        assert not is_valid_variable_name(name)


class TestExtractPlaceholders:
    """Tests for placeholder extraction."""

    def test_trims_and_dedupes_in_order(self):
        html = "{{ b }} {{a}} {{b}} {{  c  }}"
        assert extract_placeholders(html) == ["b", "a", "c"]

    def test_no_placeholders(self):
        assert extract_placeholders("<p>Plain</p>") == []


class TestValidateTemplate:
    """Tests for template body / variable validation."""

    def test_valid_template_passes(self):
        validate_template("Hello {{name}} of {{ class }}", ["name", "class"])

    def test_extra_placeholders_are_allowed(self):
        validate_template("{{name}} {{certificate_number}}", ["name"])

    def test_empty_body(self):
        with pytest.raises(EmptyBodyError) as exc_info:
            validate_template("   ", ["name"])
        assert exc_info.value.message == "Template HTML cannot be empty"

    def test_empty_variables(self):
        with pytest.raises(EmptyVariableSetError) as exc_info:
            validate_template("{{name}}", [])
        assert exc_info.value.message == "At least one variable is required"

    def test_invalid_variable_name(self):
        with pytest.raises(InvalidVariableNameError) as exc_info:
            validate_template("{{1abc}}", ["1abc"])
        assert "Invalid variable name" in exc_info.value.message
        assert exc_info.value.status_code == 400

    def test_duplicate_variables(self):
        with pytest.raises(DuplicateVariableError) as exc_info:
            validate_template("{{name}}", ["name", "name"])
        assert exc_info.value.message == "Duplicate variable names are not allowed"

    def test_missing_variables_lists_every_one(self):
        with pytest.raises(MissingTemplateVariablesError) as exc_info:
            validate_template("{{name}}", ["name", "class", "roll"])
        assert exc_info.value.message == (
            "Template HTML is missing the following variables: class, roll"
        )
        assert exc_info.value.missing == ["class", "roll"]

    def test_empty_body_checked_before_variables(self):
        """An empty body wins over an empty variable list."""
        with pytest.raises(EmptyBodyError):
            validate_template("", [])


class TestRequiredVariables:
    """Tests for data map key presence."""

    def test_missing_keys_are_reported(self):
        assert find_missing_variables(["name", "class"], {"name": "John"}) == ["class"]

    def test_empty_string_counts_as_present(self):
        assert find_missing_variables(["name"], {"name": ""}) == []

    def test_ensure_required_variables_message(self):
        with pytest.raises(MissingRequiredVariablesError) as exc_info:
            ensure_required_variables(["student_name", "class"], {"student_name": "John"})
        assert exc_info.value.message == "Missing required variables: class"


class TestRenderTemplate:
    """Tests for rendering."""

    def test_replaces_every_occurrence(self):
        html = "{{name}} and {{ name }} and {{name }}"
        assert render_template(html, ["name"], {"name": "Asha"}) == "Asha and Asha and Asha"

    def test_round_trip_contains_every_value(self):
        html = "<p>{{student_name}}</p><p>{{class}}</p><p>{{roll}}</p>"
        data = {"student_name": "John Doe", "class": "10", "roll": 42}
        rendered = render_template(html, list(data), data)
        assert "John Doe" in rendered
        assert "10" in rendered
        assert "42" in rendered
        assert "{{" not in rendered

    def test_undeclared_placeholders_render_empty(self):
        html = "Hi {{name}}{{unknown}}!"
        assert render_template(html, ["name"], {"name": "Ram", "unknown": "x"}) == "Hi Ram!"

    def test_value_stringification(self):
        html = "{{flag}} {{off}} {{when}} {{score}}"
        data = {"flag": True, "off": False, "when": date(2024, 2, 1), "score": 3.5}
        assert render_template(html, list(data), data) == "true false 2024-02-01 3.5"

    def test_empty_string_value_renders_empty(self):
        assert render_template("[{{name}}]", ["name"], {"name": ""}) == "[]"
