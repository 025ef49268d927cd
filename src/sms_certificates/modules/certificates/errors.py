"""
Certificate Module Errors

Every error raised by the certificates services derives from
CertificateServiceError and carries a machine-readable error_code and the HTTP
status the router should answer with.

Groups:
- Template validation (create/update): never retried, surfaced to the caller.
- Preconditions (generation): raised before anything is persisted.
- Resources (numbering, QR, PDF, persistence): abort one certificate.
- Not found / state errors.
"""

from collections.abc import Iterable


class CertificateServiceError(Exception):
    """Base exception for certificate service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# Template validation
# ---------------------------------------------------------------------------


class TemplateValidationError(CertificateServiceError):
    """Base for template body / variable validation failures."""

    def __init__(self, message: str, error_code: str):
        super().__init__(message=message, error_code=error_code, status_code=400)


class InvalidVariableNameError(TemplateValidationError):
    """Raised when a declared variable name is not a valid identifier."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(
            message=(
                f"Invalid variable name: {', '.join(self.names)}. Variable names must start "
                "with a letter or underscore and contain only letters, numbers and underscores"
            ),
            error_code="INVALID_VARIABLE_NAME",
        )


class DuplicateVariableError(TemplateValidationError):
    """Raised when the same variable is declared more than once."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(
            message="Duplicate variable names are not allowed",
            error_code="DUPLICATE_VARIABLE",
        )


class EmptyBodyError(TemplateValidationError):
    def __init__(self):
        super().__init__(message="Template HTML cannot be empty", error_code="EMPTY_TEMPLATE")


class EmptyVariableSetError(TemplateValidationError):
    def __init__(self):
        super().__init__(
            message="At least one variable is required", error_code="EMPTY_VARIABLES"
        )


class MissingTemplateVariablesError(TemplateValidationError):
    """Raised when declared variables never appear in the template body."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            message=(
                "Template HTML is missing the following variables: " + ", ".join(self.missing)
            ),
            error_code="TEMPLATE_VARIABLES_MISSING",
        )


class DuplicateNameError(CertificateServiceError):
    """Raised when a template name is already taken."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            message=f'Template with name "{name}" already exists',
            error_code="DUPLICATE_TEMPLATE_NAME",
            status_code=409,
        )


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(CertificateServiceError):
    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


class TemplateNotFoundError(NotFoundError):
    def __init__(self, template_id: int):
        self.template_id = template_id
        super().__init__(
            message=f"Template with ID {template_id} not found",
            error_code="TEMPLATE_NOT_FOUND",
        )


class CertificateNotFoundError(NotFoundError):
    def __init__(self, certificate_id: int | None = None, certificate_number: str | None = None):
        if certificate_number is not None:
            message = f"Certificate with number {certificate_number} not found"
        else:
            message = f"Certificate with ID {certificate_id} not found"
        super().__init__(message=message, error_code="CERTIFICATE_NOT_FOUND")


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


class InactiveTemplateError(CertificateServiceError):
    def __init__(self, message: str = "Cannot generate certificate from inactive template"):
        super().__init__(message=message, error_code="INACTIVE_TEMPLATE", status_code=400)


class MissingRequiredVariablesError(CertificateServiceError):
    """Raised when the data map lacks keys for declared template variables."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            message=f"Missing required variables: {', '.join(self.missing)}",
            error_code="MISSING_REQUIRED_VARIABLES",
            status_code=400,
        )


class DateConversionError(CertificateServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="DATE_CONVERSION_FAILED", status_code=400)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class IdentifierExhaustionError(CertificateServiceError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            message="Failed to generate unique certificate number after maximum attempts",
            error_code="CERTIFICATE_NUMBER_EXHAUSTED",
            status_code=503,
        )


class ArtifactGenerationError(CertificateServiceError):
    def __init__(self, cause: Exception | str):
        super().__init__(
            message=f"Failed to generate QR code: {cause}",
            error_code="QR_GENERATION_FAILED",
            status_code=500,
        )


class DocumentProductionError(CertificateServiceError):
    def __init__(self, cause: Exception | str):
        super().__init__(
            message=f"Failed to generate PDF: {cause}",
            error_code="PDF_GENERATION_FAILED",
            status_code=500,
        )


class CertificatePersistenceError(CertificateServiceError):
    def __init__(self, certificate_number: str):
        self.certificate_number = certificate_number
        super().__init__(
            message=f"Failed to save certificate {certificate_number}",
            error_code="CERTIFICATE_SAVE_FAILED",
            status_code=500,
        )


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class AlreadyRevokedError(CertificateServiceError):
    """Raised when revoking a certificate that is already revoked."""

    def __init__(self, certificate_number: str):
        self.certificate_number = certificate_number
        super().__init__(
            message=f"Certificate {certificate_number} has already been revoked",
            error_code="CERTIFICATE_ALREADY_REVOKED",
            status_code=409,
        )
