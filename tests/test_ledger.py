"""Tests for LedgerService: persistence, validation and audit."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import TODAY, make_income
from kanakku.ledger import LedgerService
from kanakku.models.audit import AuditEventType
from kanakku.models.finance import (
    ExpenseCategory,
    ExpenseDraft,
    IncomeCategory,
    IncomeDraft,
    IncomeStatus,
    PaymentMethod,
    Recurrence,
)
from kanakku.models.results import ErrorCode
from kanakku.services.storage import (
    InMemoryKeyValueStore,
    LedgerRepository,
    StorageError,
)


class CountingStore(InMemoryKeyValueStore):
    def __init__(self):
        super().__init__()
        self.writes: list[str] = []

    def set(self, key, value):
        self.writes.append(key)
        super().set(key, value)


class BrokenStore(InMemoryKeyValueStore):
    def set(self, key, value):
        raise StorageError("disk full")


def salary_draft(day: date, **overrides) -> IncomeDraft:
    fields = dict(
        amount=Decimal("50000"),
        category=IncomeCategory.SALARY,
        source="Tech Corp",
        date=day,
        recurrence=Recurrence.MONTHLY,
    )
    fields.update(overrides)
    return IncomeDraft(**fields)


def coffee_draft(**overrides) -> ExpenseDraft:
    fields = dict(
        amount=Decimal("150"),
        category=ExpenseCategory.FOOD,
        description="Morning Coffee",
        date=TODAY,
        payment_method=PaymentMethod.UPI,
    )
    fields.update(overrides)
    return ExpenseDraft(**fields)


class TestLoad:
    """Startup load and reconciliation."""

    def test_load_reconciles_and_persists(self, repository, ledger, audit_storage):
        repository.save_incomes([
            make_income(TODAY - timedelta(days=1)),
            make_income(TODAY),
        ])

        ledger.load()

        statuses = [income.status for income in repository.load_incomes()]
        assert statuses == [IncomeStatus.OVERDUE, IncomeStatus.EXPECTED]
        events = audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.INCOMES_RECONCILED
        assert events[0].details == {"to_overdue": 1, "to_expected": 0}

    def test_load_without_changes_does_not_write(self, codec, clock):
        store = CountingStore()
        repository = LedgerRepository(store, codec)
        repository.save_incomes([make_income(TODAY + timedelta(days=3))])
        store.writes.clear()

        LedgerService(repository, clock=clock).load()

        assert store.writes == []

    def test_reconcile_can_be_rerun(self, ledger):
        ledger.load()
        assert ledger.reconcile() is False

    def test_empty_store_loads_empty_ledger(self, ledger):
        ledger.load()
        assert ledger.expenses == []
        assert ledger.incomes == []
        assert ledger.budgets == []


class TestIncomes:
    """Income operations through the service."""

    def test_add_received_recurring_income(self, ledger, repository):
        result = ledger.add_income(salary_draft(TODAY - timedelta(days=3)))

        assert result.success
        main, successor = result.value
        assert main.status == IncomeStatus.RECEIVED
        assert successor.status == IncomeStatus.EXPECTED
        assert successor.created_at == main.created_at + 1
        assert [i.id for i in ledger.incomes] == [main.id, successor.id]
        assert repository.load_incomes() == ledger.incomes

    def test_new_entries_are_prepended(self, ledger):
        first = ledger.add_income(salary_draft(TODAY + timedelta(days=5))).value
        second = ledger.add_income(salary_draft(TODAY - timedelta(days=1))).value
        assert [i.id for i in ledger.incomes] == [e.id for e in second + first]

    def test_invalid_income_is_rejected_without_mutation(self, ledger, audit_storage):
        result = ledger.add_income(salary_draft(TODAY, amount=Decimal("0"), source="  "))

        assert not result.success
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert {issue.field for issue in result.issues} == {"amount", "source"}
        assert ledger.incomes == []
        assert audit_storage.get_recent_events()[0].event_type == AuditEventType.VALIDATION_FAILED

    def test_add_income_audits_creation_and_successor(self, ledger, audit_storage):
        main, successor = ledger.add_income(salary_draft(TODAY)).value

        created = audit_storage.get_events_by_entity("income", main.id)
        generated = audit_storage.get_events_by_entity("income", successor.id)
        assert created[0].event_type == AuditEventType.INCOME_CREATED
        assert generated[0].event_type == AuditEventType.INCOME_SUCCESSOR_GENERATED
        assert created[0].correlation_id == generated[0].correlation_id

    def test_mark_received_persists_successor(self, ledger, repository):
        (expected,) = ledger.add_income(salary_draft(date(2024, 5, 31))).value[1:]
        assert expected.date == date(2024, 6, 30)

        result = ledger.mark_income_received(expected.id)

        assert result.success
        updated, successor = result.value
        assert updated.date == TODAY
        assert successor.date == date(2024, 7, 30)
        assert ledger.incomes[0].id == successor.id
        assert repository.load_incomes() == ledger.incomes

    def test_mark_received_unknown_id(self, ledger):
        result = ledger.mark_income_received("missing")
        assert result.error_code == ErrorCode.NOT_FOUND

    def test_mark_received_twice(self, ledger):
        main = ledger.add_income(salary_draft(TODAY, recurrence=Recurrence.NONE)).value[0]
        result = ledger.mark_income_received(main.id)
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert len(ledger.incomes) == 1

    def test_delete_and_restore_income(self, ledger, repository):
        main, successor = ledger.add_income(salary_draft(TODAY)).value

        removed = ledger.delete_income(main.id).value
        assert [i.id for i in ledger.incomes] == [successor.id]

        ledger.restore_income(removed)
        assert [i.id for i in repository.load_incomes()] == [successor.id, main.id]

    def test_delete_unknown_income(self, ledger):
        assert ledger.delete_income("missing").error_code == ErrorCode.NOT_FOUND

    def test_income_buckets(self, ledger):
        ledger.add_income(salary_draft(TODAY + timedelta(days=4)))
        ledger.add_income(salary_draft(date(2024, 5, 1), source="Old Employer"))

        buckets = ledger.income_buckets()

        assert [i.date for i in buckets.overdue] == [date(2024, 6, 1)]
        assert [i.date for i in buckets.upcoming] == [date(2024, 6, 19)]


class TestExpenses:

    def test_add_expense_prepends(self, ledger):
        first = ledger.add_expense(coffee_draft()).value
        second = ledger.add_expense(coffee_draft(description="Lunch")).value
        assert [e.id for e in ledger.expenses] == [second.id, first.id]

    def test_expense_requires_description(self, ledger):
        result = ledger.add_expense(coffee_draft(description=""))
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.issues[0].field == "description"
        assert ledger.expenses == []

    def test_delete_then_restore_appends(self, ledger, repository):
        a = ledger.add_expense(coffee_draft(description="A")).value
        b = ledger.add_expense(coffee_draft(description="B")).value

        removed = ledger.delete_expense(b.id).value
        ledger.restore_expense(removed)

        assert [e.id for e in repository.load_expenses()] == [a.id, b.id]

    def test_delete_unknown_expense(self, ledger):
        assert ledger.delete_expense("missing").error_code == ErrorCode.NOT_FOUND

    def test_storage_failure_propagates_and_keeps_state(self, codec, clock):
        ledger = LedgerService(LedgerRepository(BrokenStore(), codec), clock=clock)
        with pytest.raises(StorageError):
            ledger.add_expense(coffee_draft())
        assert ledger.expenses == []


class TestBudgets:

    def test_set_budget_upserts(self, ledger, repository):
        ledger.set_budget(ExpenseCategory.FOOD, Decimal("5000"))
        ledger.set_budget(ExpenseCategory.TRANSPORT, Decimal("3000"))
        ledger.set_budget(ExpenseCategory.FOOD, Decimal("6000"))

        budgets = repository.load_budgets()
        assert [b.category for b in budgets] == [ExpenseCategory.TRANSPORT, ExpenseCategory.FOOD]
        assert ledger.get_budget(ExpenseCategory.FOOD) == Decimal("6000")

    def test_get_budget_defaults_to_zero(self, ledger):
        assert ledger.get_budget(ExpenseCategory.HEALTHCARE) == Decimal("0")

    def test_negative_budget_rejected(self, ledger):
        result = ledger.set_budget(ExpenseCategory.FOOD, Decimal("-1"))
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert ledger.budgets == []


class TestDemoAndTotals:

    def test_demo_data(self, ledger, repository):
        ledger.load_demo_data()

        assert len(repository.load_expenses()) == 4
        assert len(repository.load_incomes()) == 4
        assert len(repository.load_budgets()) == 3
        # Demo statuses already match the pinned date
        assert ledger.reconcile() is False

    def test_totals(self, ledger):
        ledger.load_demo_data()
        assert ledger.total_received_income() == Decimal("115000")
        assert ledger.total_expenses() == Decimal("16800")

    def test_replace_all(self, ledger, repository):
        ledger.load_demo_data()
        ledger.replace_all([], [make_income(TODAY)], [])
        assert repository.load_expenses() == []
        assert len(ledger.incomes) == 1
