"""
Delivery Interface

Backups and CSV exports are handed to a delivery channel after they are
produced. The channel is a collaborator: the app never depends on it
succeeding. A failed delivery is reported, and the local copy stays.
"""

from abc import ABC, abstractmethod


class DeliveryError(Exception):
    """The channel could not deliver the content."""
    pass


class DeliveryInterface(ABC):
    """Abstract interface for sending backups and exports to the user."""

    @property
    @abstractmethod
    def channel(self) -> str:
        """Short channel name, used in logs and audit events."""
        pass

    @abstractmethod
    async def send_backup(self, recipient: str, content: str) -> None:
        """
        Deliver an encrypted backup.

        Raises:
            DeliveryError: If delivery fails
        """
        pass

    @abstractmethod
    async def send_export(self, recipient: str, csv_text: str) -> None:
        """
        Deliver a CSV export.

        Raises:
            DeliveryError: If delivery fails
        """
        pass
