"""Encryption and credential package."""

from kanakku.security.codec import EncryptionCodec
from kanakku.security.credentials import (
    CredentialChecker,
    PlaintextCredentialChecker,
)

__all__ = [
    "CredentialChecker",
    "EncryptionCodec",
    "PlaintextCredentialChecker",
]
