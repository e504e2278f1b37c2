"""
Outbox Delivery

Writes each backup / export as a file into an outbox directory, one
subdirectory per recipient. A mail client, sync folder or share sheet
picks the files up from there.

Files are written off the event loop thread and retried on transient
OS errors.
"""

import asyncio
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from kanakku.config import get_settings
from kanakku.services.delivery.interface import DeliveryError, DeliveryInterface


logger = structlog.get_logger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9@._+-]")


class OutboxDelivery(DeliveryInterface):
    """Delivery channel backed by a local directory."""

    def __init__(self, outbox_dir: Optional[Path] = None):
        self._outbox_dir = Path(outbox_dir or get_settings().delivery.outbox_dir)

    @property
    def channel(self) -> str:
        return "outbox"

    @property
    def outbox_dir(self) -> Path:
        return self._outbox_dir

    def _target(self, recipient: str, prefix: str, suffix: str) -> Path:
        folder = self._outbox_dir / (_UNSAFE.sub("_", recipient) or "unknown")
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        return folder / f"{prefix}-{stamp}{suffix}"

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    async def _deliver(self, path: Path, text: str) -> None:
        try:
            await asyncio.to_thread(self._write, path, text)
        except OSError as e:
            raise DeliveryError(f"Could not write {path.name}: {e}")
        logger.info("delivered_to_outbox", path=str(path), size=len(text))

    async def send_backup(self, recipient: str, content: str) -> None:
        await self._deliver(self._target(recipient, "kanakku-backup", ".enc"), content)

    async def send_export(self, recipient: str, csv_text: str) -> None:
        await self._deliver(self._target(recipient, "kanakku-export", ".csv"), csv_text)
