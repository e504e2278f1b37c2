"""
Credential Checks

OPEN ISSUE: Profiles keep the password as entered and login compares
by equality. That behavior is kept, but every read/write of the
password goes through a CredentialChecker so a salted-hash checker can
replace it without touching account or lifecycle code.
"""

from abc import ABC, abstractmethod
from typing import Optional

from kanakku.models.profile import UserProfile


class CredentialChecker(ABC):
    """Decides what gets stored for a password and how it is verified."""

    @abstractmethod
    def prepare(self, password: str) -> str:
        """Return the value to store on the profile for this password."""
        pass

    @abstractmethod
    def verify(self, profile: UserProfile, password: Optional[str]) -> bool:
        """Check a login attempt against the stored value."""
        pass


class PlaintextCredentialChecker(CredentialChecker):
    """Stores the password verbatim and compares by equality."""

    def prepare(self, password: str) -> str:
        return password

    def verify(self, profile: UserProfile, password: Optional[str]) -> bool:
        return profile.password == (password or "")
