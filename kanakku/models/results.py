"""
Result Models

Every fallible operation returns an OperationResult instead of raising.
Callers branch on `success` / `error_code`. Only truly unexpected
conditions (storage unavailable) raise.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Failure taxonomy surfaced to callers."""
    VALIDATION_ERROR = "VALIDATION_ERROR"        # Input fails local constraints
    DECRYPTION_FAILED = "DECRYPTION_FAILED"      # Wrong password or corrupt ciphertext
    INVALID_FORMAT = "INVALID_FORMAT"            # Decrypted, but not a backup
    NOT_FOUND = "NOT_FOUND"                      # Unknown id / user
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"  # Known user, wrong password


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating user input."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    def errors_by_field(self) -> dict[str, str]:
        """First error message per field, for inline display next to inputs."""
        errors: dict[str, str] = {}
        for issue in self.issues:
            if issue.severity == "error":
                errors.setdefault(issue.field, issue.message)
        return errors


class OperationResult(BaseModel):
    """
    Discriminated success / failure result.

    On success `value` carries the operation's payload (created entries,
    a receipt, ...). On failure `error_code` says why, and `issues`
    lists field-level problems for VALIDATION_ERROR.
    """

    success: bool
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)
    value: Optional[Any] = None

    @classmethod
    def ok(cls, value: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, value=value, message=message)

    @classmethod
    def fail(
        cls,
        error_code: ErrorCode,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            error_code=error_code,
            message=message,
            issues=issues or [],
        )

    @classmethod
    def invalid(cls, validation: ValidationResult) -> "OperationResult":
        return cls.fail(
            ErrorCode.VALIDATION_ERROR,
            "; ".join(
                issue.message for issue in validation.issues if issue.severity == "error"
            ),
            validation.issues,
        )

    def __bool__(self) -> bool:
        return self.success
