"""
Core Finance Models for Kanakku

These models define the strict schemas for everything the tracker
persists and exports. They are designed to:
1. Reject unknown categories/statuses at the storage boundary
2. Provide clear validation error messages
3. Serialize to the same camelCase JSON the backup format uses

DESIGN DECISION: Closed enumerations are str Enums. A persisted value
that is not a member fails validation instead of flowing through as text.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class IncomeCategory(str, Enum):
    """Where an income comes from."""
    SALARY = "Salary"
    RENT = "Rent"
    INTEREST = "Interest"
    BUSINESS = "Business"
    GIFT = "Gift"
    OTHER = "Other"


class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    Budgets are set per expense category.
    """
    FOOD = "Food"
    TRANSPORT = "Transport"
    ENTERTAINMENT = "Entertainment"
    UTILITIES = "Utilities"
    HEALTHCARE = "Healthcare"
    SHOPPING = "Shopping"
    HOUSING = "Housing"
    OTHER = "Other"


class PaymentMethod(str, Enum):
    """How an expense was paid."""
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"
    OTHER = "Other"


class Recurrence(str, Enum):
    """How often an income repeats."""
    NONE = "None"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class IncomeStatus(str, Enum):
    """
    Lifecycle status of one income occurrence.

    RECEIVED is terminal for the occurrence. A recurring occurrence
    that becomes RECEIVED spawns a successor in EXPECTED or OVERDUE.
    """
    EXPECTED = "Expected"
    OVERDUE = "Overdue"
    RECEIVED = "Received"


# =============================================================================
# BASE
# =============================================================================

class CamelModel(BaseModel):
    """
    Base for persisted models.

    Field names are snake_case in Python and camelCase on the wire
    (createdAt, tenantContact, paymentMethod). Both are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_storage(self) -> dict:
        """Dump to the camelCase JSON-compatible dict used in storage and backups."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Expense(CamelModel):
    """A money outflow. Expenses have no lifecycle."""

    id: str = Field(
        default_factory=new_id,
        description="Unique expense ID"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount spent"
    )
    category: ExpenseCategory
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
    )
    date: date
    payment_method: PaymentMethod = PaymentMethod.UPI
    created_at: int = Field(
        ...,
        ge=0,
        description="Creation timestamp in epoch milliseconds"
    )

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> str:
        return format(amount, "f")


class Income(CamelModel):
    """
    One occurrence of an income.

    `date` is the day received (RECEIVED) or the day expected
    (EXPECTED / OVERDUE).

    CRITICAL: Successors are independent records. There is no stored
    parent/child link beyond the shared source, category and recurrence.
    """

    id: str = Field(
        default_factory=new_id,
        description="Unique income ID (immutable)"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount received or expected"
    )
    category: IncomeCategory
    source: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Payer, employer or tenant name"
    )
    date: date
    recurrence: Recurrence = Recurrence.NONE
    status: IncomeStatus
    tenant_contact: Optional[str] = Field(
        default=None,
        max_length=30,
        description="Tenant phone number (Rent only)"
    )
    created_at: int = Field(
        ...,
        ge=0,
        description="Creation timestamp in epoch milliseconds; orders same-date entries"
    )

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> str:
        return format(amount, "f")

    @model_validator(mode='after')
    def drop_contact_unless_rent(self) -> 'Income':
        """Tenant contact only makes sense for rent."""
        if self.category != IncomeCategory.RENT or not self.tenant_contact:
            self.tenant_contact = None
        return self

    @property
    def is_pending(self) -> bool:
        return self.status != IncomeStatus.RECEIVED

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != Recurrence.NONE


class Budget(CamelModel):
    """Spending limit for one expense category."""

    category: ExpenseCategory
    limit: Decimal = Field(
        ...,
        ge=0,
        description="Monthly limit for the category"
    )

    @field_serializer('limit', when_used='json')
    def serialize_limit(self, limit: Decimal) -> str:
        return format(limit, "f")


# =============================================================================
# DRAFTS - what a caller supplies before ids/status are assigned
# =============================================================================

class IncomeDraft(BaseModel):
    """
    Income as entered by the user.

    id, created_at and status are assigned by the lifecycle engine.
    Amount/source constraints are checked by TransactionValidator so the
    caller gets field-level issues instead of an exception.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal
    category: IncomeCategory = IncomeCategory.SALARY
    source: str = ""
    date: date
    recurrence: Recurrence = Recurrence.NONE
    tenant_contact: Optional[str] = None


class ExpenseDraft(BaseModel):
    """Expense as entered by the user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal
    category: ExpenseCategory = ExpenseCategory.FOOD
    description: str = ""
    date: date
    payment_method: PaymentMethod = PaymentMethod.UPI


class IncomeBuckets(BaseModel):
    """Pending incomes split for display."""

    overdue: list[Income] = Field(default_factory=list)
    upcoming: list[Income] = Field(default_factory=list)
