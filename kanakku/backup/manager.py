"""
Backup / Restore Manager

Encrypts the full user dataset into a single string, keeps the most
recent ones on the device, hands them to a delivery channel, and brings
them back.

FLOWS:
1. backup:   snapshot -> encrypt -> local ring (newest first, capped) -> deliver
2. import:   content -> decrypt -> parse -> replace ledger (+ active profile if same id)
3. restore:  content -> decrypt -> parse -> adopt profile -> log in -> replace ledger

CRITICAL: Import and restore parse the whole payload before changing
anything. A backup that fails to decrypt or does not have the expected
shape leaves the ledger and profiles exactly as they were.

ERROR CODES:
- DECRYPTION_FAILED: wrong key or corrupt ciphertext
- INVALID_FORMAT: decrypted, but not a Kanakku backup
- NOT_FOUND: no active profile / unknown local backup id
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from kanakku.audit import AuditLogger, create_correlation_id
from kanakku.auth import AccountService
from kanakku.config import get_settings
from kanakku.dates import Clock, to_iso
from kanakku.ledger import LedgerService
from kanakku.models.audit import AuditEventBuilder, AuditEventType
from kanakku.models.profile import (
    BackupMetadata,
    BackupReceipt,
    BackupSnapshot,
    LocalBackup,
    SnapshotData,
    UserProfile,
)
from kanakku.models.results import ErrorCode, OperationResult
from kanakku.security import EncryptionCodec
from kanakku.services.delivery import DeliveryError, DeliveryInterface
from kanakku.services.storage import LedgerRepository


logger = structlog.get_logger(__name__)

CSV_HEADER = "Date,Type,Category,Description,Amount,Method\n"


class BackupManager:
    """
    Backup, import, restore and export of the active user's data.

    The delivery channel is optional. Without one, backups stay local
    and receipts report delivered=False.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        ledger: LedgerService,
        accounts: AccountService,
        codec: EncryptionCodec,
        delivery: Optional[DeliveryInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ):
        self._repository = repository
        self._ledger = ledger
        self._accounts = accounts
        self._codec = codec
        self._delivery = delivery
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or ledger.clock

        settings = get_settings()
        self._ring_size = settings.app.backup_ring_size
        self._version = settings.app.backup_version
        self._fallback_recipient = settings.delivery.fallback_recipient

    def _recipient(self) -> str:
        profile = self._accounts.current_profile
        return (profile.email if profile else "") or self._fallback_recipient

    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------

    def create_snapshot(self) -> OperationResult:
        """
        Bundle the active profile and the ledger.

        Returns:
            OperationResult whose value is a BackupSnapshot
        """
        profile = self._accounts.current_profile
        if profile is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, "No active profile")

        snapshot = BackupSnapshot(
            metadata=BackupMetadata(
                user_id=profile.id,
                email=profile.email,
                version=self._version,
                timestamp=self._clock.now_ms(),
            ),
            user_profile=profile,
            data=SnapshotData(
                expenses=self._ledger.expenses,
                incomes=self._ledger.incomes,
                budgets=self._ledger.budgets,
            ),
        )
        return OperationResult.ok(snapshot)

    async def backup(self, custom_key: Optional[str] = None) -> OperationResult:
        """
        Encrypt a snapshot, keep it locally, then deliver it.

        The local copy is saved before delivery is attempted. A delivery
        failure does not fail the backup.

        Returns:
            OperationResult whose value is a BackupReceipt
        """
        result = self.create_snapshot()
        if not result:
            return result
        snapshot: BackupSnapshot = result.value

        correlation_id = create_correlation_id()
        content = self._codec.encrypt(snapshot.to_storage(), custom_key)

        entry = LocalBackup(
            date=datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            user_name=snapshot.user_profile.name,
            content=content,
            size=len(content),
        )
        backups = [entry, *self._repository.load_local_backups()][:self._ring_size]
        self._repository.save_local_backups(backups)

        self._audit.log(AuditEventBuilder.backup_created(
            backup_id=entry.id,
            size=entry.size,
            custom_key=bool(custom_key),
            correlation_id=correlation_id,
        ))

        receipt = BackupReceipt(backup=entry, delivered=False)
        if self._delivery is None:
            return OperationResult.ok(receipt, message="Backup saved locally")

        try:
            await self._delivery.send_backup(self._recipient(), content)
            receipt.delivered = True
        except DeliveryError as e:
            receipt.delivery_error = str(e)
            self._audit.log(AuditEventBuilder.backup_delivery_failed(
                backup_id=entry.id,
                channel=self._delivery.channel,
                error_message=str(e),
                correlation_id=correlation_id,
            ))

        return OperationResult.ok(receipt)

    def get_local_backups(self) -> list[LocalBackup]:
        """Local backups, newest first."""
        return self._repository.load_local_backups()

    def delete_local_backup(self, backup_id: str) -> OperationResult:
        backups = self._repository.load_local_backups()
        remaining = [backup for backup in backups if backup.id != backup_id]
        if len(remaining) == len(backups):
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Backup not found: {backup_id}")

        self._repository.save_local_backups(remaining)
        self._audit.log_removed(AuditEventType.BACKUP_DELETED, "backup", backup_id)
        return OperationResult.ok()

    # -------------------------------------------------------------------------
    # Import / restore
    # -------------------------------------------------------------------------

    def _decode(
        self,
        content: str,
        custom_key: Optional[str],
    ) -> Union[tuple[UserProfile, SnapshotData], OperationResult]:
        """
        Decrypt and parse a backup without side effects.

        Returns (profile, data), or a failed OperationResult.
        """
        payload = self._codec.decrypt(content.strip(), custom_key)
        if payload is None:
            return OperationResult.fail(
                ErrorCode.DECRYPTION_FAILED,
                "Could not decrypt backup. Check the key.",
            )

        if (
            not isinstance(payload, dict)
            or not payload.get("userProfile")
            or not isinstance(payload.get("data"), dict)
        ):
            return OperationResult.fail(ErrorCode.INVALID_FORMAT, "Not a Kanakku backup")

        # null or absent lists restore as empty
        raw_data = {key: value for key, value in payload["data"].items() if value is not None}

        try:
            profile = UserProfile.model_validate(payload["userProfile"])
            data = SnapshotData.model_validate(raw_data)
        except ValidationError as e:
            logger.warning("backup_payload_invalid", errors=e.error_count())
            return OperationResult.fail(ErrorCode.INVALID_FORMAT, "Backup contents are invalid")

        return profile, data

    def _counts(self, data: SnapshotData) -> dict[str, int]:
        return {
            "expenses": len(data.expenses),
            "incomes": len(data.incomes),
            "budgets": len(data.budgets),
        }

    def import_from(self, content: str, custom_key: Optional[str] = None) -> OperationResult:
        """
        Replace the ledger with a backup's data.

        The active profile is overwritten only when the backup belongs
        to the same user id.
        """
        correlation_id = create_correlation_id()

        decoded = self._decode(content, custom_key)
        if isinstance(decoded, OperationResult):
            self._audit.log(AuditEventBuilder.import_failed(
                error_code=decoded.error_code.value,
                mode="import",
                correlation_id=correlation_id,
            ))
            return decoded
        profile, data = decoded

        self._ledger.replace_all(data.expenses, data.incomes, data.budgets)
        profile_updated = self._accounts.replace_active_profile(profile)

        counts = self._counts(data)
        self._audit.log(AuditEventBuilder.data_imported(
            event_type=AuditEventType.DATA_IMPORTED,
            user_id=profile.id,
            counts=counts,
            profile_updated=profile_updated,
            correlation_id=correlation_id,
        ))
        return OperationResult.ok(counts, message="Data imported")

    async def _read(self, path: Union[str, Path]) -> Union[str, OperationResult]:
        try:
            return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("backup_file_unreadable", path=str(path), error=str(e))
            return OperationResult.fail(ErrorCode.INVALID_FORMAT, f"Could not read {path}")

    async def import_file(
        self,
        path: Union[str, Path],
        custom_key: Optional[str] = None,
    ) -> OperationResult:
        content = await self._read(path)
        if isinstance(content, OperationResult):
            return content
        return self.import_from(content, custom_key)

    def restore_user_from_backup(
        self,
        content: str,
        custom_key: Optional[str] = None,
    ) -> OperationResult:
        """
        Restore onto a fresh device: adopt the backup's profile, log it
        in, then replace the ledger.

        Used from the login screen, so no active profile is required.
        """
        correlation_id = create_correlation_id()

        decoded = self._decode(content, custom_key)
        if isinstance(decoded, OperationResult):
            self._audit.log(AuditEventBuilder.import_failed(
                error_code=decoded.error_code.value,
                mode="restore",
                correlation_id=correlation_id,
            ))
            return decoded
        profile, data = decoded

        self._accounts.adopt_profile(profile)
        self._ledger.replace_all(data.expenses, data.incomes, data.budgets)

        counts = self._counts(data)
        self._audit.log(AuditEventBuilder.data_imported(
            event_type=AuditEventType.USER_RESTORED,
            user_id=profile.id,
            counts=counts,
            profile_updated=True,
            correlation_id=correlation_id,
        ))
        return OperationResult.ok(profile, message="User restored")

    async def restore_user_from_file(
        self,
        path: Union[str, Path],
        custom_key: Optional[str] = None,
    ) -> OperationResult:
        content = await self._read(path)
        if isinstance(content, OperationResult):
            return content
        return self.restore_user_from_backup(content, custom_key)

    def restore_local_backup(
        self,
        backup_id: str,
        custom_key: Optional[str] = None,
    ) -> OperationResult:
        backup = next(
            (entry for entry in self._repository.load_local_backups() if entry.id == backup_id),
            None,
        )
        if backup is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Backup not found: {backup_id}")
        return self.restore_user_from_backup(backup.content, custom_key)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_csv(self) -> str:
        """
        Flat CSV of expenses followed by incomes.

        Description / source are wrapped in double quotes as-is; embedded
        quotes are not escaped. For incomes the Method column holds the
        recurrence.
        """
        expense_rows = [
            f'{to_iso(e.date)},Expense,{e.category.value},"{e.description}",'
            f'{format(e.amount, "f")},{e.payment_method.value}'
            for e in self._ledger.expenses
        ]
        income_rows = [
            f'{to_iso(i.date)},Income,{i.category.value},"{i.source}",'
            f'{format(i.amount, "f")},{i.recurrence.value}'
            for i in self._ledger.incomes
        ]
        return CSV_HEADER + "\n".join(expense_rows) + "\n" + "\n".join(income_rows)

    async def export_data(self) -> OperationResult:
        """
        Build the CSV export and deliver it to the user.

        Returns:
            OperationResult whose value is the CSV text; the message says
            whether delivery worked
        """
        csv_text = self.export_csv()
        recipient = self._recipient()

        self._audit.log_changed(
            AuditEventType.EXPORT_GENERATED,
            "ledger",
            None,
            "CSV export generated",
            details={"size": len(csv_text)},
        )

        if self._delivery is None:
            return OperationResult.ok(csv_text, message="Export generated")

        try:
            await self._delivery.send_export(recipient, csv_text)
        except DeliveryError as e:
            logger.warning("export_delivery_failed", channel=self._delivery.channel, error=str(e))
            return OperationResult.ok(csv_text, message=f"Export could not be delivered: {e}")

        return OperationResult.ok(csv_text, message=f"Export sent to {recipient}")
