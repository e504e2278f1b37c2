"""
Ledger Repository

Typed access to the persisted layout. This is the boundary where raw
JSON becomes models: a stored value with an unknown category, status
or recurrence fails validation here and surfaces as CorruptDataError
instead of flowing into the lifecycle engine.

Persisted layout (key -> value):
    kanakku_expenses            list[Expense], newest first
    kanakku_incomes             list[Income]
    kanakku_budgets             list[Budget], one per category
    kanakku_theme               "light" | "dark"
    kanakku_identity_map        {email or mobile: user id}
    kanakku_profiles_encrypted  codec blob of {user id: UserProfile}
    kanakku_current_user_id     active profile id
    kanakku_local_backups       list[LocalBackup], newest first
    kanakku_audit_log           stored audit rows (see KeyValueAuditStorage)

Session store (not persisted long-term):
    kanakku_is_authenticated    bool
"""

from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError

from kanakku.models.finance import Budget, Expense, Income
from kanakku.models.profile import LocalBackup, Theme, UserProfile
from kanakku.security.codec import EncryptionCodec
from kanakku.services.storage.interface import (
    CorruptDataError,
    KeyValueStoreInterface,
)
from kanakku.services.storage.memory import InMemoryKeyValueStore


STORAGE_KEY_EXPENSES = "kanakku_expenses"
STORAGE_KEY_INCOMES = "kanakku_incomes"
STORAGE_KEY_BUDGETS = "kanakku_budgets"
STORAGE_KEY_THEME = "kanakku_theme"
STORAGE_KEY_AUTH = "kanakku_is_authenticated"
STORAGE_KEY_IDENTITY_MAP = "kanakku_identity_map"
STORAGE_KEY_PROFILES_ENCRYPTED = "kanakku_profiles_encrypted"
STORAGE_KEY_CURRENT_USER_ID = "kanakku_current_user_id"
STORAGE_KEY_LOCAL_BACKUPS = "kanakku_local_backups"
STORAGE_KEY_AUDIT_LOG = "kanakku_audit_log"

ModelT = TypeVar("ModelT", bound=BaseModel)


class LedgerRepository:
    """
    Reads and writes the ledger, profiles and backups through a
    key-value store.

    The profile map is encrypted as one blob with the codec's default key.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        codec: EncryptionCodec,
        session_store: Optional[KeyValueStoreInterface] = None,
    ):
        self._store = store
        self._codec = codec
        # Session flag defaults to memory so it never outlives the process
        self._session_store = session_store or InMemoryKeyValueStore()

    @property
    def store(self) -> KeyValueStoreInterface:
        return self._store

    def _load_list(self, key: str, model: type[ModelT]) -> list[ModelT]:
        raw = self._store.get(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise CorruptDataError(f"{key} must be a list, got {type(raw).__name__}")
        try:
            return [model.model_validate(item) for item in raw]
        except ValidationError as e:
            raise CorruptDataError(f"{key} holds an invalid {model.__name__}: {e}")

    def _save_list(self, key: str, items: list) -> None:
        self._store.set(key, [item.to_storage() for item in items])

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def load_expenses(self) -> list[Expense]:
        return self._load_list(STORAGE_KEY_EXPENSES, Expense)

    def save_expenses(self, expenses: list[Expense]) -> None:
        self._save_list(STORAGE_KEY_EXPENSES, expenses)

    def load_incomes(self) -> list[Income]:
        return self._load_list(STORAGE_KEY_INCOMES, Income)

    def save_incomes(self, incomes: list[Income]) -> None:
        self._save_list(STORAGE_KEY_INCOMES, incomes)

    def load_budgets(self) -> list[Budget]:
        return self._load_list(STORAGE_KEY_BUDGETS, Budget)

    def save_budgets(self, budgets: list[Budget]) -> None:
        self._save_list(STORAGE_KEY_BUDGETS, budgets)

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    def get_theme(self) -> Theme:
        raw = self._store.get(STORAGE_KEY_THEME)
        if raw is None:
            return Theme.LIGHT
        try:
            return Theme(raw)
        except ValueError:
            raise CorruptDataError(f"Unknown theme: {raw!r}")

    def set_theme(self, theme: Theme) -> None:
        self._store.set(STORAGE_KEY_THEME, theme.value)

    # -------------------------------------------------------------------------
    # Identity index & profiles
    # -------------------------------------------------------------------------

    def load_identity_map(self) -> dict[str, str]:
        raw = self._store.get(STORAGE_KEY_IDENTITY_MAP) or {}
        if not isinstance(raw, dict):
            raise CorruptDataError("Identity map must be an object")
        return {str(k): str(v) for k, v in raw.items()}

    def save_identity_map(self, identity_map: dict[str, str]) -> None:
        self._store.set(STORAGE_KEY_IDENTITY_MAP, identity_map)

    def resolve_identifier(self, identifier: str) -> Optional[str]:
        """Map an email / mobile to the internal user id."""
        return self.load_identity_map().get(identifier)

    def link_identifiers(self, user_id: str, identifiers: list[str]) -> None:
        identity_map = self.load_identity_map()
        for identifier in identifiers:
            if identifier:
                identity_map[identifier] = user_id
        self.save_identity_map(identity_map)

    def load_profiles(self) -> dict[str, UserProfile]:
        blob = self._store.get(STORAGE_KEY_PROFILES_ENCRYPTED)
        if not blob:
            return {}
        raw = self._codec.decrypt(blob)
        if not isinstance(raw, dict):
            raise CorruptDataError("Encrypted profile map cannot be decrypted")
        try:
            return {
                user_id: UserProfile.model_validate(profile)
                for user_id, profile in raw.items()
            }
        except ValidationError as e:
            raise CorruptDataError(f"Profile map holds an invalid profile: {e}")

    def save_profiles(self, profiles: dict[str, UserProfile]) -> None:
        payload = {user_id: profile.to_storage() for user_id, profile in profiles.items()}
        self._store.set(STORAGE_KEY_PROFILES_ENCRYPTED, self._codec.encrypt(payload))

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.load_profiles().get(user_id)

    def put_profile(self, profile: UserProfile) -> None:
        profiles = self.load_profiles()
        profiles[profile.id] = profile
        self.save_profiles(profiles)

    def get_current_user_id(self) -> Optional[str]:
        return self._store.get(STORAGE_KEY_CURRENT_USER_ID)

    def set_current_user_id(self, user_id: str) -> None:
        self._store.set(STORAGE_KEY_CURRENT_USER_ID, user_id)

    def clear_current_user_id(self) -> None:
        self._store.delete(STORAGE_KEY_CURRENT_USER_ID)

    # -------------------------------------------------------------------------
    # Session flag
    # -------------------------------------------------------------------------

    def is_session_authenticated(self) -> bool:
        return self._session_store.get(STORAGE_KEY_AUTH) is True

    def set_session_authenticated(self) -> None:
        self._session_store.set(STORAGE_KEY_AUTH, True)

    def clear_session(self) -> None:
        self._session_store.delete(STORAGE_KEY_AUTH)

    # -------------------------------------------------------------------------
    # Local backup ring
    # -------------------------------------------------------------------------

    def load_local_backups(self) -> list[LocalBackup]:
        return self._load_list(STORAGE_KEY_LOCAL_BACKUPS, LocalBackup)

    def save_local_backups(self, backups: list[LocalBackup]) -> None:
        self._save_list(STORAGE_KEY_LOCAL_BACKUPS, backups)
