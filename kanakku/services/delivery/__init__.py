"""Backup and export delivery channels."""

from kanakku.services.delivery.interface import DeliveryError, DeliveryInterface
from kanakku.services.delivery.outbox import OutboxDelivery

__all__ = ["DeliveryError", "DeliveryInterface", "OutboxDelivery"]
