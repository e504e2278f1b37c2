"""
Application Assembly for Kanakku

This module wires the components together and runs the startup
sequence the presentation layer relies on:
1. Configure logging
2. Open the store and build the typed repository
3. Build the audit trail, ledger, accounts and backup manager
4. Restore the session (authenticated flag + active profile)
5. Load the ledger and run the one startup reconciliation

DESIGN DECISION: Every collaborator can be injected. Tests pass
in-memory stores, a fixed clock and fake delivery; the app passes
nothing and gets the JSON file store and the outbox.
"""

from typing import Any, NamedTuple, Optional

import structlog
from pydantic import ValidationError

from kanakku.agents import EntryAssistAgent
from kanakku.audit import AuditLogger, configure_logging
from kanakku.auth import AccountService, BiometricAuthenticator
from kanakku.backup import BackupManager
from kanakku.config import get_settings, validate_all_settings
from kanakku.dates import Clock
from kanakku.ledger import LedgerService
from kanakku.security import EncryptionCodec
from kanakku.services.delivery import DeliveryInterface, OutboxDelivery
from kanakku.services.storage import (
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    LedgerRepository,
)
from kanakku.session import SessionContext
from kanakku.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class AppComponents(NamedTuple):
    """Everything the presentation layer calls into."""

    repository: LedgerRepository
    audit_logger: AuditLogger
    ledger: LedgerService
    accounts: AccountService
    backups: BackupManager
    entry_assist: Optional[EntryAssistAgent]

    @property
    def session(self) -> SessionContext:
        return self.accounts.session


def _create_entry_assist(model: Any, clock: Clock) -> Optional[EntryAssistAgent]:
    if model is not None:
        return EntryAssistAgent(model=model, clock=clock)
    try:
        return EntryAssistAgent(clock=clock)
    except ValidationError as e:
        # Gemini not configured - entry assist stays off
        logger.warning("entry_assist_unavailable", error_count=e.error_count())
        return None


def create_app_components(
    store: Optional[KeyValueStoreInterface] = None,
    session_store: Optional[KeyValueStoreInterface] = None,
    delivery: Optional[DeliveryInterface] = None,
    clock: Optional[Clock] = None,
    codec: Optional[EncryptionCodec] = None,
    biometric: Optional[BiometricAuthenticator] = None,
    entry_assist_model: Any = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Persistent key-value store. Defaults to the JSON file
               configured in StorageSettings.
        session_store: Store for the session flag. Defaults to memory.
        delivery: Backup/export channel. Defaults to the outbox directory.
        clock: Source of today and timestamps.
        codec: Encryption codec. Defaults to the configured passphrase.
        biometric: Platform authenticator, if the device has one.
        entry_assist_model: Model for entry assist; Gemini from
                            settings when omitted.

    Raises:
        StorageError: If the store cannot be read at startup
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    unconfigured = [
        name for name, ok in validate_all_settings().items()
        if ok is False
    ]
    if unconfigured:
        logger.warning("settings_incomplete", groups=unconfigured)

    clock = clock or Clock()
    store = store or JsonFileKeyValueStore(settings.storage.store_path)
    codec = codec or EncryptionCodec()
    delivery = delivery or OutboxDelivery()

    repository = LedgerRepository(store, codec, session_store=session_store)
    audit_logger = AuditLogger(
        KeyValueAuditStorage(store, max_events=settings.storage.audit_log_size)
    )
    validator = TransactionValidator()

    ledger = LedgerService(
        repository,
        audit_logger=audit_logger,
        validator=validator,
        clock=clock,
    )
    accounts = AccountService(
        repository,
        audit_logger=audit_logger,
        validator=validator,
        biometric=biometric,
    )
    backups = BackupManager(
        repository,
        ledger,
        accounts,
        codec,
        delivery=delivery,
        audit_logger=audit_logger,
        clock=clock,
    )

    accounts.restore_session()
    ledger.load()

    logger.info(
        "app_started",
        environment=settings.app.app_environment,
        authenticated=accounts.session.is_authenticated,
    )

    return AppComponents(
        repository=repository,
        audit_logger=audit_logger,
        ledger=ledger,
        accounts=accounts,
        backups=backups,
        entry_assist=_create_entry_assist(entry_assist_model, clock),
    )
