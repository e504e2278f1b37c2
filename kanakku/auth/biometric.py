"""
Platform Biometric Authenticator

The device's fingerprint / face unlock is an external collaborator.
Only the credential id it hands back is stored on the profile; the
actual verification happens on the platform.
"""

from abc import ABC, abstractmethod

from kanakku.models.profile import UserProfile


class BiometricError(Exception):
    """The platform authenticator refused or failed."""
    pass


class BiometricAuthenticator(ABC):
    """Abstract interface for a platform authenticator."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether a user-verifying platform authenticator exists."""
        pass

    @abstractmethod
    async def register(self, profile: UserProfile) -> str:
        """
        Create a credential for this profile.

        Returns:
            Base64 raw id of the new credential

        Raises:
            BiometricError: Registration cancelled or failed
        """
        pass

    @abstractmethod
    async def verify(self, credential_id: str) -> bool:
        """
        Ask the platform to verify the user against a stored credential.

        Raises:
            BiometricError: Verification could not be performed
        """
        pass
