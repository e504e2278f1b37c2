"""Encrypted backup, restore and export."""

from kanakku.backup.manager import BackupManager

__all__ = ["BackupManager"]
