# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Error codes and exception classes for ido-mysql convergence.

Every error is fatal for the convergence pass of this feature. Errors name
the step that failed and carry a machine-readable code:

```json
{
  "error": {
    "code": "SCHEMA_CHECK_FAILED",
    "step": "schema-import",
    "message": "Schema pre-check failed with exit status 1",
    "details": {"exit_status": 1, "server_error": 1045},
    "suggestion": "Verify the database credentials and connectivity"
  }
}
```
"""

from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

REDACTED = "[REDACTED]"


class IdoErrorCode(str, Enum):
    """Standard error codes, grouped by error family."""

    # Precondition
    BASE_NOT_DECLARED = "BASE_NOT_DECLARED"

    # Configuration
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    UNSUPPORTED_DIALECT = "UNSUPPORTED_DIALECT"
    TLS_MATERIAL_INSUFFICIENT = "TLS_MATERIAL_INSUFFICIENT"
    TLS_MATERIAL_AMBIGUOUS = "TLS_MATERIAL_AMBIGUOUS"
    TLS_MATERIAL_INVALID = "TLS_MATERIAL_INVALID"
    ORDERING_VIOLATION = "ORDERING_VIOLATION"

    # External command
    APPLY_FAILED = "APPLY_FAILED"
    PACKAGE_INSTALL_FAILED = "PACKAGE_INSTALL_FAILED"
    SCHEMA_CHECK_FAILED = "SCHEMA_CHECK_FAILED"
    SCHEMA_IMPORT_FAILED = "SCHEMA_IMPORT_FAILED"

    # Render
    RENDER_FAILED = "RENDER_FAILED"


ERROR_CODE_SUGGESTIONS: dict[IdoErrorCode, str] = {
    IdoErrorCode.BASE_NOT_DECLARED: "Declare the base icinga2 installation before the ido-mysql feature",
    IdoErrorCode.INVALID_CONFIGURATION: "Check the feature parameters against the documented types and values",
    IdoErrorCode.UNSUPPORTED_DIALECT: "Use 'mysql' or 'mariadb' for import_schema, or disable it",
    IdoErrorCode.TLS_MATERIAL_INSUFFICIENT: "Provide a path or inline PEM content for each of key, cert and CA",
    IdoErrorCode.TLS_MATERIAL_AMBIGUOUS: "Provide either a path or inline PEM content per TLS artifact, not both",
    IdoErrorCode.TLS_MATERIAL_INVALID: "Check that the inline PEM material parses and the key matches the certificate",
    IdoErrorCode.ORDERING_VIOLATION: "Remove the ordering edge that creates the cycle",
    IdoErrorCode.APPLY_FAILED: "Inspect the target host; the step was not applied",
    IdoErrorCode.PACKAGE_INSTALL_FAILED: "Check the package repositories configured on the host",
    IdoErrorCode.SCHEMA_CHECK_FAILED: "Verify the database credentials and connectivity",
    IdoErrorCode.SCHEMA_IMPORT_FAILED: "Inspect the database manually; a partial import is not retried",
    IdoErrorCode.RENDER_FAILED: "This is an internal invariant violation; report it with the feature parameters",
}


def redact(value: Any, secrets: Iterable[str] = ()) -> Any:
    """Replace every literal secret inside value with REDACTED.

    Walks dicts, lists and tuples; other non-string values are returned as-is.
    """
    needles = [s for s in secrets if s]
    if not needles:
        return value
    if isinstance(value, str):
        for needle in needles:
            value = value.replace(needle, REDACTED)
        return value
    if isinstance(value, dict):
        return {k: redact(v, needles) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v, needles) for v in value)
    return value


class IdoErrorDetail(BaseModel):
    """Serialisable error body."""

    code: str = Field(..., description="Machine-readable error code")
    step: str | None = Field(None, description="Convergence step that failed")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional context for debugging")
    suggestion: str | None = Field(None, description="Remediation hint")


class IdoError(Exception):
    """Base exception for ido-mysql convergence errors.

    Usage:
        raise IdoError(
            code=IdoErrorCode.APPLY_FAILED,
            message="Failed to write feature configuration",
            step="feature-write",
            secrets=[password],
        )
    """

    default_code: IdoErrorCode = IdoErrorCode.INVALID_CONFIGURATION

    def __init__(
        self,
        message: str,
        code: IdoErrorCode | str | None = None,
        step: str | None = None,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
        secrets: Iterable[str] = (),
    ):
        """Initialize the error.

        Args:
            message: Human-readable error message
            code: Error code (defaults to the class default)
            step: Name of the convergence step that failed
            details: Additional context for debugging
            suggestion: Override default suggestion (optional)
            secrets: Literal secret values scrubbed from message and details
        """
        if code is None:
            code = self.default_code
        self.code = code if isinstance(code, IdoErrorCode) else IdoErrorCode(code)
        secrets = list(secrets)
        self.message = redact(message, secrets)
        self.step = step
        self.details = redact(details, secrets) if details else None
        self.suggestion = suggestion or ERROR_CODE_SUGGESTIONS.get(self.code)
        super().__init__(f"[{step}] {self.message}" if step else self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code.value,
                "step": self.step,
                "message": self.message,
                "details": self.details,
                "suggestion": self.suggestion,
            }
        }

    def to_detail(self) -> IdoErrorDetail:
        return IdoErrorDetail(
            code=self.code.value,
            step=self.step,
            message=self.message,
            details=self.details,
            suggestion=self.suggestion,
        )


# =============================================================================
# Error families
# =============================================================================


class PreconditionError(IdoError):
    """Required base installation not declared. Raised before any state change."""

    default_code = IdoErrorCode.BASE_NOT_DECLARED


class ConfigurationError(IdoError):
    """Ambiguous, insufficient or unsupported input. Raised before any state change."""

    default_code = IdoErrorCode.INVALID_CONFIGURATION


class OrderingError(ConfigurationError):
    """The ordering graph has a cycle or names an unknown resource."""

    default_code = IdoErrorCode.ORDERING_VIOLATION


class ExternalCommandError(IdoError):
    """A package install, schema check, schema import or apply step failed."""

    default_code = IdoErrorCode.APPLY_FAILED

    def __init__(self, message: str, exit_status: int | None = None, **kwargs):
        self.exit_status = exit_status
        details = dict(kwargs.pop("details", None) or {})
        if exit_status is not None:
            details.setdefault("exit_status", exit_status)
        super().__init__(message, details=details or None, **kwargs)


class PackageInstallError(ExternalCommandError):
    default_code = IdoErrorCode.PACKAGE_INSTALL_FAILED


class SchemaCheckError(ExternalCommandError):
    """The pre-check failed for a reason other than a missing schema."""

    default_code = IdoErrorCode.SCHEMA_CHECK_FAILED


class SchemaImportError(ExternalCommandError):
    """The import command failed. Never retried."""

    default_code = IdoErrorCode.SCHEMA_IMPORT_FAILED


class RenderError(IdoError):
    """Attribute merge or rendering hit an internal invariant violation."""

    default_code = IdoErrorCode.RENDER_FAILED
