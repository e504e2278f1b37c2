"""
Income Lifecycle Engine

Pure functions over lists of Income. Nothing here reads the clock or
touches storage: `today` and creation timestamps are passed in, and every
function returns new lists instead of mutating its input.

STATE MACHINE (per occurrence):

    Expected --(date passes)--> Overdue
    Overdue  --(date moves back to today or later)--> Expected
    Expected / Overdue --(mark received)--> Received  [terminal]

A recurring occurrence that becomes Received spawns exactly one successor
at next_occurrence(scheduled date). The successor is a fresh record with
its own id; nothing links it back to its originator.

CRITICAL: Successor dates are computed from the scheduled date, never
from the day the money actually arrived. A salary due on the 31st but
received on the 2nd still produces a successor on the last day of the
following month.
"""

from datetime import date
from typing import Optional, TypeVar

from kanakku.dates import next_occurrence
from kanakku.models.finance import (
    Income,
    IncomeBuckets,
    IncomeDraft,
    IncomeStatus,
    Recurrence,
    new_id,
)


RecordT = TypeVar("RecordT")


class LifecycleError(Exception):
    """Base exception for lifecycle transitions."""
    pass


class EntryNotFoundError(LifecycleError):
    """No entry with the given id."""
    pass


class AlreadyReceivedError(LifecycleError):
    """The occurrence is already Received."""
    pass


def _pending_status(due: date, today: date) -> IncomeStatus:
    """Status of a not-yet-received occurrence due on `due`."""
    return IncomeStatus.OVERDUE if due < today else IncomeStatus.EXPECTED


def _successor(originator: Income, scheduled: date, today: date, created_at: int) -> Income:
    due = next_occurrence(scheduled, originator.recurrence)
    return originator.model_copy(update={
        "id": new_id(),
        "date": due,
        "status": _pending_status(due, today),
        "created_at": created_at,
    })


def create_income(draft: IncomeDraft, today: date, created_at: int) -> list[Income]:
    """
    Build the entries for a newly entered income.

    Returns [main] or [main, successor]. A draft dated today or earlier is
    Received on entry; if it recurs, its successor is created right away
    with created_at one millisecond after the main entry.
    """
    status = IncomeStatus.RECEIVED if draft.date <= today else IncomeStatus.EXPECTED

    main = Income(
        id=new_id(),
        amount=draft.amount,
        category=draft.category,
        source=draft.source,
        date=draft.date,
        recurrence=draft.recurrence,
        status=status,
        tenant_contact=draft.tenant_contact,
        created_at=created_at,
    )

    if status == IncomeStatus.RECEIVED and draft.recurrence != Recurrence.NONE:
        return [main, _successor(main, main.date, today, created_at + 1)]

    return [main]


def reconcile(incomes: list[Income], today: date) -> tuple[list[Income], bool]:
    """
    Bring pending statuses in line with today's date.

    Expected entries dated before today become Overdue; Overdue entries
    dated today or later go back to Expected. Received entries are never
    touched. Running it twice with the same `today` changes nothing the
    second time.

    Returns:
        (incomes, changed) where changed is True if any status moved
    """
    changed = False
    result = []

    for income in incomes:
        if income.status != IncomeStatus.RECEIVED:
            status = _pending_status(income.date, today)
            if status != income.status:
                income = income.model_copy(update={"status": status})
                changed = True
        result.append(income)

    return result, changed


def count_transitions(before: list[Income], after: list[Income]) -> tuple[int, int]:
    """
    Count (to_overdue, to_expected) between two reconcile snapshots.

    Both lists must be in the same order, as reconcile() preserves it.
    """
    to_overdue = to_expected = 0
    for old, new in zip(before, after):
        if old.status == new.status:
            continue
        if new.status == IncomeStatus.OVERDUE:
            to_overdue += 1
        elif new.status == IncomeStatus.EXPECTED:
            to_expected += 1
    return to_overdue, to_expected


def mark_received(
    incomes: list[Income],
    income_id: str,
    today: date,
    created_at: int,
) -> tuple[list[Income], Income, Optional[Income]]:
    """
    Record that a pending occurrence has been paid today.

    The occurrence's date becomes today and its status Received. For a
    recurring entry the successor is scheduled from the original date.

    Returns:
        (incomes, updated, successor) with incomes ordered
        [successor, updated, *others]; successor is None for one-off entries

    Raises:
        EntryNotFoundError: No income with that id
        AlreadyReceivedError: The occurrence was already received
    """
    target = next((income for income in incomes if income.id == income_id), None)
    if target is None:
        raise EntryNotFoundError(f"Income not found: {income_id}")
    if target.status == IncomeStatus.RECEIVED:
        raise AlreadyReceivedError(f"Income already received: {income_id}")

    updated = target.model_copy(update={
        "date": today,
        "status": IncomeStatus.RECEIVED,
    })
    others = [income for income in incomes if income.id != income_id]

    if target.recurrence == Recurrence.NONE:
        return [updated, *others], updated, None

    successor = _successor(target, target.date, today, created_at)
    return [successor, updated, *others], updated, successor


def remove_entry(items: list[RecordT], entry_id: str) -> tuple[list[RecordT], RecordT]:
    """
    Remove one record by id. Works for incomes and expenses.

    Deleting an income occurrence never cascades to its successor.

    Raises:
        EntryNotFoundError: No record with that id
    """
    removed = next((item for item in items if item.id == entry_id), None)
    if removed is None:
        raise EntryNotFoundError(f"Entry not found: {entry_id}")
    return [item for item in items if item.id != entry_id], removed


def restore_entry(items: list[RecordT], record: RecordT) -> list[RecordT]:
    """Re-insert a previously removed record verbatim, at the end."""
    return [*items, record]


def bucket_pending(incomes: list[Income], today: date) -> IncomeBuckets:
    """
    Split pending incomes for display.

    Overdue keeps the stored order. Upcoming is sorted by date, ties keep
    their stored order.
    """
    pending = [income for income in incomes if income.status != IncomeStatus.RECEIVED]
    overdue = [income for income in pending if income.date < today]
    upcoming = sorted(
        (income for income in pending if income.date >= today),
        key=lambda income: income.date,
    )
    return IncomeBuckets(overdue=overdue, upcoming=upcoming)
