"""Input validation package."""

from kanakku.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
