"""
Ledger Service

Owns the in-memory expense, income and budget collections for the
active session and persists every change immediately.

DESIGN DECISION: The service is the only writer of the ledger keys.
Every mutation follows the same path:
1. Validate input (TransactionValidator) - abort with VALIDATION_ERROR
2. Compute the new collection (lifecycle engine, pure)
3. Persist through the repository
4. Emit an audit event

If step 3 raises StorageError, the in-memory state is left unchanged
and the error propagates to the caller.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Optional

import structlog

from kanakku.audit import AuditLogger, create_correlation_id
from kanakku.dates import Clock, to_iso
from kanakku.lifecycle import (
    AlreadyReceivedError,
    EntryNotFoundError,
    bucket_pending,
    count_transitions,
    create_income,
    mark_received,
    reconcile,
    remove_entry,
    restore_entry,
)
from kanakku.models.audit import AuditEventType
from kanakku.models.finance import (
    Budget,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    Income,
    IncomeBuckets,
    IncomeCategory,
    IncomeDraft,
    IncomeStatus,
    PaymentMethod,
    Recurrence,
    new_id,
)
from kanakku.models.results import ErrorCode, OperationResult, ValidationResult
from kanakku.services.storage import LedgerRepository
from kanakku.validation import TransactionValidator


logger = structlog.get_logger(__name__)

DAY_MS = 86_400_000


class LedgerService:
    """
    Expenses, incomes and budgets of the active user.

    Call load() once at startup. It runs the single reconciliation pass
    that moves pending incomes between Expected and Overdue.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
        clock: Optional[Clock] = None,
    ):
        self._repository = repository
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or TransactionValidator()
        self._clock = clock or Clock()

        self._expenses: list[Expense] = []
        self._incomes: list[Income] = []
        self._budgets: list[Budget] = []

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def incomes(self) -> list[Income]:
        return list(self._incomes)

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    @property
    def clock(self) -> Clock:
        return self._clock

    # -------------------------------------------------------------------------
    # Loading & reconciliation
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """
        Read the ledger from storage and reconcile income statuses.

        Raises:
            StorageError: Store unreadable or holding invalid records
        """
        self._expenses = self._repository.load_expenses()
        self._incomes = self._repository.load_incomes()
        self._budgets = self._repository.load_budgets()

        logger.info(
            "ledger_loaded",
            expenses=len(self._expenses),
            incomes=len(self._incomes),
            budgets=len(self._budgets),
        )

        self.reconcile()

    def reconcile(self) -> bool:
        """
        Re-run the Expected/Overdue pass against today's date.

        Safe to call again (for example when the app stays open past
        midnight). Persists only when something changed.

        Returns True if any status moved.
        """
        reconciled, changed = reconcile(self._incomes, self._clock.today())
        if not changed:
            return False

        to_overdue, to_expected = count_transitions(self._incomes, reconciled)
        self._repository.save_incomes(reconciled)
        self._incomes = reconciled
        self._audit.log_reconciled(to_overdue=to_overdue, to_expected=to_expected)
        return True

    # -------------------------------------------------------------------------
    # Incomes
    # -------------------------------------------------------------------------

    def _reject(self, entity_type: str, validation: ValidationResult) -> OperationResult:
        self._audit.log_validation_failed(
            entity_type=entity_type,
            issues=[issue.model_dump() for issue in validation.issues],
        )
        return OperationResult.invalid(validation)

    def add_income(self, draft: IncomeDraft) -> OperationResult:
        """
        Add an income entered by the user.

        A draft dated today or earlier is stored as Received and, when it
        recurs, together with its next occurrence. Later drafts are
        stored as Expected.

        Returns:
            OperationResult whose value is the list of created entries
        """
        validation = self._validator.validate_income_draft(draft)
        if validation.has_errors:
            return self._reject("income", validation)

        correlation_id = create_correlation_id()
        created = create_income(draft, self._clock.today(), self._clock.reserve_ms(2))

        incomes = [*created, *self._incomes]
        self._repository.save_incomes(incomes)
        self._incomes = incomes

        main = created[0]
        self._audit.log_income_created(
            income_id=main.id,
            category=main.category.value,
            status=main.status.value,
            correlation_id=correlation_id,
        )
        for successor in created[1:]:
            self._audit.log_successor_generated(
                income_id=successor.id,
                originator_id=main.id,
                due_date=to_iso(successor.date),
                status=successor.status.value,
                correlation_id=correlation_id,
            )

        warnings = "; ".join(validation.warnings)
        return OperationResult.ok(created, message=warnings or None)

    def mark_income_received(self, income_id: str) -> OperationResult:
        """
        Mark a pending income as received today.

        Future-dated entries are accepted as-is; confirming an early
        payment with the user is the caller's job.

        Returns:
            OperationResult whose value is (updated, successor or None)
        """
        correlation_id = create_correlation_id()
        today = self._clock.today()

        try:
            incomes, updated, successor = mark_received(
                self._incomes,
                income_id,
                today,
                self._clock.now_ms(),
            )
        except EntryNotFoundError as e:
            return OperationResult.fail(ErrorCode.NOT_FOUND, str(e))
        except AlreadyReceivedError as e:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, str(e))

        scheduled = next(income.date for income in self._incomes if income.id == income_id)

        self._repository.save_incomes(incomes)
        self._incomes = incomes

        self._audit.log_income_received(
            income_id=updated.id,
            scheduled_date=to_iso(scheduled),
            received_date=to_iso(today),
            correlation_id=correlation_id,
        )
        if successor is not None:
            self._audit.log_successor_generated(
                income_id=successor.id,
                originator_id=updated.id,
                due_date=to_iso(successor.date),
                status=successor.status.value,
                correlation_id=correlation_id,
            )

        return OperationResult.ok((updated, successor))

    def delete_income(self, income_id: str) -> OperationResult:
        """Remove one occurrence. Its successor, if any, stays."""
        try:
            incomes, removed = remove_entry(self._incomes, income_id)
        except EntryNotFoundError as e:
            return OperationResult.fail(ErrorCode.NOT_FOUND, str(e))

        self._repository.save_incomes(incomes)
        self._incomes = incomes
        self._audit.log_removed(AuditEventType.INCOME_DELETED, "income", income_id)
        return OperationResult.ok(removed)

    def restore_income(self, record: Income) -> OperationResult:
        incomes = restore_entry(self._incomes, record)
        self._repository.save_incomes(incomes)
        self._incomes = incomes
        self._audit.log_changed(
            AuditEventType.INCOME_RESTORED,
            "income",
            record.id,
            "Deleted income restored",
        )
        return OperationResult.ok(record)

    def income_buckets(self) -> IncomeBuckets:
        """Pending incomes split into overdue and upcoming."""
        return bucket_pending(self._incomes, self._clock.today())

    def total_received_income(self) -> Decimal:
        return sum(
            (income.amount for income in self._incomes if income.status == IncomeStatus.RECEIVED),
            Decimal("0"),
        )

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def add_expense(self, draft: ExpenseDraft) -> OperationResult:
        validation = self._validator.validate_expense_draft(draft)
        if validation.has_errors:
            return self._reject("expense", validation)

        expense = Expense(
            id=new_id(),
            amount=draft.amount,
            category=draft.category,
            description=draft.description,
            date=draft.date,
            payment_method=draft.payment_method,
            created_at=self._clock.now_ms(),
        )

        expenses = [expense, *self._expenses]
        self._repository.save_expenses(expenses)
        self._expenses = expenses

        self._audit.log_changed(
            AuditEventType.EXPENSE_ADDED,
            "expense",
            expense.id,
            f"{expense.category.value} expense added",
            details={"category": expense.category.value},
        )
        return OperationResult.ok(expense)

    def delete_expense(self, expense_id: str) -> OperationResult:
        """
        Remove an expense.

        The removed record is returned so the caller can offer undo
        through restore_expense().
        """
        try:
            expenses, removed = remove_entry(self._expenses, expense_id)
        except EntryNotFoundError as e:
            return OperationResult.fail(ErrorCode.NOT_FOUND, str(e))

        self._repository.save_expenses(expenses)
        self._expenses = expenses
        self._audit.log_removed(AuditEventType.EXPENSE_DELETED, "expense", expense_id)
        return OperationResult.ok(removed)

    def restore_expense(self, record: Expense) -> OperationResult:
        expenses = restore_entry(self._expenses, record)
        self._repository.save_expenses(expenses)
        self._expenses = expenses
        self._audit.log_changed(
            AuditEventType.EXPENSE_RESTORED,
            "expense",
            record.id,
            "Deleted expense restored",
        )
        return OperationResult.ok(record)

    def total_expenses(self) -> Decimal:
        return sum((expense.amount for expense in self._expenses), Decimal("0"))

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    def set_budget(self, category: ExpenseCategory, limit: Decimal) -> OperationResult:
        """Create or replace the budget of a category."""
        validation = self._validator.validate_budget_limit(limit)
        if validation.has_errors:
            return self._reject("budget", validation)

        budget = Budget(category=category, limit=limit)
        budgets = [b for b in self._budgets if b.category != category]
        budgets.append(budget)

        self._repository.save_budgets(budgets)
        self._budgets = budgets
        self._audit.log_changed(
            AuditEventType.BUDGET_SET,
            "budget",
            category.value,
            f"Budget for {category.value} set to {limit}",
            details={"limit": str(limit)},
        )
        return OperationResult.ok(budget)

    def get_budget(self, category: ExpenseCategory) -> Decimal:
        """Limit for the category, or 0 when none is set."""
        for budget in self._budgets:
            if budget.category == category:
                return budget.limit
        return Decimal("0")

    # -------------------------------------------------------------------------
    # Bulk replacement
    # -------------------------------------------------------------------------

    def replace_all(
        self,
        expenses: list[Expense],
        incomes: list[Income],
        budgets: list[Budget],
    ) -> None:
        """
        Replace the whole ledger (import / restore).

        Incoming records are stored verbatim; statuses are not
        reconciled until the next load() or reconcile().
        """
        self._repository.save_expenses(expenses)
        self._repository.save_incomes(incomes)
        self._repository.save_budgets(budgets)

        self._expenses = list(expenses)
        self._incomes = list(incomes)
        self._budgets = list(budgets)

        logger.info(
            "ledger_replaced",
            expenses=len(expenses),
            incomes=len(incomes),
            budgets=len(budgets),
        )

    def load_demo_data(self) -> None:
        """
        Replace the ledger with a small sample dataset.

        The sample shows the income workflow: a received salary with its
        expected successor, a received rent and an overdue rent.
        """
        today = self._clock.today()
        now = self._clock.now_ms()

        def day(offset: int):
            return today + timedelta(days=offset)

        expenses = [
            Expense(id="demo-exp-1", amount=Decimal("150"), category=ExpenseCategory.FOOD,
                    description="Morning Coffee", date=day(0),
                    payment_method=PaymentMethod.UPI, created_at=now),
            Expense(id="demo-exp-2", amount=Decimal("450"), category=ExpenseCategory.TRANSPORT,
                    description="Uber to Office", date=day(-1),
                    payment_method=PaymentMethod.CARD, created_at=now - DAY_MS),
            Expense(id="demo-exp-3", amount=Decimal("15000"), category=ExpenseCategory.HOUSING,
                    description="House Rent", date=day(-10),
                    payment_method=PaymentMethod.UPI, created_at=now - 10 * DAY_MS),
            Expense(id="demo-exp-4", amount=Decimal("1200"), category=ExpenseCategory.SHOPPING,
                    description="Groceries", date=day(-3),
                    payment_method=PaymentMethod.CASH, created_at=now - 3 * DAY_MS),
        ]

        incomes = [
            Income(id="demo-inc-salary-past", amount=Decimal("100000"),
                   category=IncomeCategory.SALARY, source="Tech Corp", date=day(-3),
                   recurrence=Recurrence.MONTHLY, status=IncomeStatus.RECEIVED,
                   created_at=now - 3 * DAY_MS),
            Income(id="demo-inc-salary-future", amount=Decimal("100000"),
                   category=IncomeCategory.SALARY, source="Tech Corp", date=day(27),
                   recurrence=Recurrence.MONTHLY, status=IncomeStatus.EXPECTED,
                   created_at=now - 3 * DAY_MS + 1),
            Income(id="demo-inc-rent-received", amount=Decimal("15000"),
                   category=IncomeCategory.RENT, source="Tenant John", date=day(-5),
                   recurrence=Recurrence.MONTHLY, status=IncomeStatus.RECEIVED,
                   tenant_contact="+919876543210", created_at=now - 5 * DAY_MS),
            Income(id="demo-inc-rent-overdue", amount=Decimal("12000"),
                   category=IncomeCategory.RENT, source="Tenant Mike", date=day(-5),
                   recurrence=Recurrence.MONTHLY, status=IncomeStatus.OVERDUE,
                   tenant_contact="+919999988888", created_at=now - 5 * DAY_MS),
        ]

        budgets = [
            Budget(category=ExpenseCategory.FOOD, limit=Decimal("5000")),
            Budget(category=ExpenseCategory.TRANSPORT, limit=Decimal("3000")),
            Budget(category=ExpenseCategory.HOUSING, limit=Decimal("20000")),
        ]

        self.replace_all(expenses, incomes, budgets)
        self._audit.log_changed(
            AuditEventType.DEMO_DATA_LOADED,
            "ledger",
            None,
            "Demo data loaded",
            details={"expenses": len(expenses), "incomes": len(incomes), "budgets": len(budgets)},
        )
