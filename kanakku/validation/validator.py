"""
Transaction Validation

DESIGN DECISION: Validation reports, it never fixes.
Each check produces a ValidationIssue bound to the input field it
concerns, so a form can show the message next to that field.

SEVERITY:
- error: the draft cannot be saved (amount <= 0, missing text)
- warning: saved, but worth a second look (absurdly large amount)

Validation runs before any mutation. A draft with an error-severity
issue never reaches the lifecycle engine.
"""

from decimal import Decimal
from typing import Optional

from kanakku.config import get_settings
from kanakku.models.finance import ExpenseDraft, IncomeDraft
from kanakku.models.results import ValidationIssue, ValidationResult


class TransactionValidator:
    """Checks drafts, budget limits and onboarding input."""

    def __init__(self, max_amount: Optional[Decimal] = None):
        """
        Initialize validator.

        Args:
            max_amount: Amount above which a warning is raised.
                       Defaults to the configured sanity ceiling.
        """
        if max_amount is None:
            max_amount = Decimal(str(get_settings().app.max_amount))
        self._max_amount = max_amount

    def _check_amount(self, amount: Optional[Decimal]) -> list[ValidationIssue]:
        issues = []

        if amount is None or amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Valid amount required",
                severity="error",
            ))
        elif amount > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
            ))

        return issues

    def validate_income_draft(self, draft: IncomeDraft) -> ValidationResult:
        issues = self._check_amount(draft.amount)

        if not draft.source.strip():
            issues.append(ValidationIssue(
                field="source",
                issue_type="missing",
                message="Source required",
                severity="error",
            ))

        return ValidationResult(issues=issues)

    def validate_expense_draft(self, draft: ExpenseDraft) -> ValidationResult:
        issues = self._check_amount(draft.amount)

        if not draft.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description required",
                severity="error",
            ))

        return ValidationResult(issues=issues)

    def validate_budget_limit(self, limit: Decimal) -> ValidationResult:
        """A limit of zero is allowed; it means 'no budget'."""
        issues = []

        if limit < 0:
            issues.append(ValidationIssue(
                field="limit",
                issue_type="invalid_value",
                message="Budget limit cannot be negative",
                severity="error",
            ))

        return ValidationResult(issues=issues)

    def validate_onboarding(self, email: str, mobile: str) -> ValidationResult:
        """At least one login identifier is needed to find the profile again."""
        issues = []

        if not (email or "").strip() and not (mobile or "").strip():
            issues.append(ValidationIssue(
                field="identifier",
                issue_type="missing",
                message="Email or mobile number required",
                severity="error",
            ))

        return ValidationResult(issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
