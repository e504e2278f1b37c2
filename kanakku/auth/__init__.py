"""Accounts, session and biometric login."""

from kanakku.auth.biometric import BiometricAuthenticator, BiometricError
from kanakku.auth.service import AccountService

__all__ = ["AccountService", "BiometricAuthenticator", "BiometricError"]
