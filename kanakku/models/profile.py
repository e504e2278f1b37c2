"""
Profile and Backup Models

UserProfile is the single local user's identity and preferences.
BackupSnapshot is the full exportable bundle that gets encrypted.

DESIGN DECISION: The profile store is keyed by an opaque internal id.
Login identifiers (email / mobile) only point at that id through the
identity index, so changing an email never orphans the data.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import Field, StringConstraints

from kanakku.models.finance import (
    Budget,
    CamelModel,
    Expense,
    Income,
    new_id,
)


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class UserProfile(CamelModel):
    """
    Identity / preferences record.

    NOTE: `password` is stored as entered and compared by equality
    (see CredentialChecker). Local-only, not real security.
    """

    id: str = Field(default_factory=new_id)
    name: str = Field(default="User", max_length=100)
    email: str = Field(default="", max_length=254)
    mobile: str = Field(default="", max_length=20)
    language: str = Field(default="en", max_length=10)
    currency: str = Field(default="₹", max_length=5)
    password: Annotated[str, StringConstraints(strip_whitespace=False)] = ""
    profile_picture: Optional[str] = Field(
        default=None,
        description="Data URL of the profile picture"
    )
    biometric_enabled: bool = False
    biometric_credential_id: Optional[str] = Field(
        default=None,
        description="Base64 raw id of the platform credential"
    )

    @property
    def identifiers(self) -> list[str]:
        """Login identifiers that should map to this profile."""
        return [value for value in (self.mobile, self.email) if value]


class LocalBackup(CamelModel):
    """One entry of the on-device backup ring."""

    id: str = Field(default_factory=new_id)
    date: str = Field(
        ...,
        description="ISO timestamp of when the backup was taken"
    )
    user_name: str
    content: str = Field(
        ...,
        description="Encrypted snapshot"
    )
    size: int = Field(
        ...,
        ge=0,
        description="Approximate size (characters of ciphertext)"
    )


class BackupMetadata(CamelModel):
    user_id: str
    email: str = ""
    version: str = "1.0"
    timestamp: int = Field(
        ...,
        ge=0,
        description="Epoch milliseconds when the snapshot was taken"
    )


class SnapshotData(CamelModel):
    """Transactional part of a snapshot. Missing lists restore as empty."""

    expenses: list[Expense] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)


class BackupSnapshot(CamelModel):
    """
    Full exportable bundle.

    Wire shape:
        {metadata: {userId, email, version, timestamp},
         userProfile: {...},
         data: {expenses, incomes, budgets}}
    """

    metadata: BackupMetadata
    user_profile: UserProfile
    data: SnapshotData


class BackupReceipt(CamelModel):
    """Outcome of a backup: the local entry plus how delivery went."""

    backup: LocalBackup
    delivered: bool
    delivery_error: Optional[str] = None
