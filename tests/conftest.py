"""
Shared fixtures.

Everything runs against in-memory stores with a pinned calendar date
(2024-06-15) and a fast codec. No network: delivery and the Gemini
model are replaced by fakes.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from kanakku.audit import AuditLogger
from kanakku.auth import AccountService
from kanakku.backup import BackupManager
from kanakku.dates import Clock
from kanakku.ledger import LedgerService
from kanakku.models.finance import Income, IncomeCategory, IncomeStatus, Recurrence
from kanakku.security import EncryptionCodec
from kanakku.services.delivery import DeliveryError, DeliveryInterface
from kanakku.services.storage import (
    InMemoryKeyValueStore,
    KeyValueAuditStorage,
    LedgerRepository,
)


TODAY = date(2024, 6, 15)


def make_income(
    day: date,
    status: IncomeStatus = IncomeStatus.EXPECTED,
    recurrence: Recurrence = Recurrence.MONTHLY,
    category: IncomeCategory = IncomeCategory.SALARY,
    created_at: int = 1,
    amount: Decimal = Decimal("1000"),
    source: str = "Acme Corp",
    **kwargs,
) -> Income:
    return Income(
        amount=amount,
        category=category,
        source=source,
        date=day,
        recurrence=recurrence,
        status=status,
        created_at=created_at,
        **kwargs,
    )


class RecordingDelivery(DeliveryInterface):
    """Delivery fake that records what it was asked to send."""

    def __init__(self, error: Optional[str] = None):
        self.error = error
        self.backups: list[tuple[str, str]] = []
        self.exports: list[tuple[str, str]] = []

    @property
    def channel(self) -> str:
        return "recording"

    async def send_backup(self, recipient: str, content: str) -> None:
        if self.error:
            raise DeliveryError(self.error)
        self.backups.append((recipient, content))

    async def send_export(self, recipient: str, csv_text: str) -> None:
        if self.error:
            raise DeliveryError(self.error)
        self.exports.append((recipient, csv_text))


@pytest.fixture
def clock():
    return Clock(fixed_today=TODAY)


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def codec():
    return EncryptionCodec(default_passphrase="test-default-passphrase", iterations=1000)


@pytest.fixture
def repository(store, codec):
    return LedgerRepository(store, codec)


@pytest.fixture
def audit_storage(store):
    return KeyValueAuditStorage(store)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def ledger(repository, audit_logger, clock):
    return LedgerService(repository, audit_logger=audit_logger, clock=clock)


@pytest.fixture
def accounts(repository, audit_logger):
    return AccountService(repository, audit_logger=audit_logger)


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def backups(repository, ledger, accounts, codec, delivery, audit_logger, clock):
    return BackupManager(
        repository,
        ledger,
        accounts,
        codec,
        delivery=delivery,
        audit_logger=audit_logger,
        clock=clock,
    )


@pytest.fixture
def onboarded(accounts):
    """An active, fully onboarded profile."""
    accounts.start_signup("asha@example.com")
    result = accounts.complete_onboarding(
        name="Asha",
        email="asha@example.com",
        mobile="9876543210",
        password="secret",
    )
    return result.value
