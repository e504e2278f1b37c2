"""
Account Service

Signup, login, onboarding and profile preferences for the local user.

DESIGN DECISION: Identity is two-level.
- The identity index maps every login identifier (email, mobile) to an
  opaque user id.
- The encrypted profile map holds one UserProfile per user id.

An unknown identifier fails with NOT_FOUND ("User not found") and a
wrong password with INVALID_CREDENTIALS ("Invalid credentials"), so the
login screen can offer signup for the first and retry for the second.

NOTE: This is local convenience, not security. See CredentialChecker.
"""

from typing import Any, Optional

import structlog

from kanakku.audit import AuditLogger
from kanakku.auth.biometric import BiometricAuthenticator, BiometricError
from kanakku.config import get_settings
from kanakku.models.audit import AuditEventBuilder, AuditEventType
from kanakku.models.finance import new_id
from kanakku.models.profile import Theme, UserProfile
from kanakku.models.results import ErrorCode, OperationResult
from kanakku.security import CredentialChecker, PlaintextCredentialChecker
from kanakku.services.storage import LedgerRepository
from kanakku.session import SessionContext
from kanakku.validation import TransactionValidator


logger = structlog.get_logger(__name__)

USER_NOT_FOUND = "User not found"
INVALID_CREDENTIALS = "Invalid credentials"


class AccountService:
    """Owns the SessionContext and every write to profiles and identities."""

    def __init__(
        self,
        repository: LedgerRepository,
        session: Optional[SessionContext] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
        credential_checker: Optional[CredentialChecker] = None,
        biometric: Optional[BiometricAuthenticator] = None,
    ):
        self._repository = repository
        self._session = session or SessionContext()
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or TransactionValidator()
        self._credentials = credential_checker or PlaintextCredentialChecker()
        self._biometric = biometric
        self._settings = get_settings().app

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def current_profile(self) -> Optional[UserProfile]:
        return self._session.profile

    @property
    def is_biometric_supported(self) -> bool:
        return self._biometric is not None and self._biometric.is_available()

    def _find_profile(self, identifier: str) -> Optional[UserProfile]:
        user_id = self._repository.resolve_identifier(identifier)
        if user_id is None:
            return None
        return self._repository.get_profile(user_id)

    def _activate(self, profile: UserProfile) -> None:
        self._repository.set_current_user_id(profile.id)
        self._repository.set_session_authenticated()
        self._session.activate(profile)

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def restore_session(self) -> SessionContext:
        """
        Rebuild the session at startup.

        An authenticated session without a stored profile resumes
        onboarding (a signup that was started but not finished).
        """
        if not self._repository.is_session_authenticated():
            return self._session

        self._session.is_authenticated = True

        user_id = self._repository.get_current_user_id()
        profile = self._repository.get_profile(user_id) if user_id else None
        if profile is not None:
            self._session.activate(profile)
        else:
            self._session.is_onboarding_complete = False

        logger.info(
            "session_restored",
            user_id=user_id,
            onboarding_complete=self._session.is_onboarding_complete,
        )
        return self._session

    def login(self, identifier: str, password: Optional[str] = None) -> OperationResult:
        identifier = identifier.strip()
        self._session.auth_error = ""
        self._session.login_identifier = identifier

        profile = self._find_profile(identifier)

        if profile is None:
            self._session.auth_error = USER_NOT_FOUND
            self._audit.log(AuditEventBuilder.login_attempt(
                identifier=identifier,
                succeeded=False,
                error_code=ErrorCode.NOT_FOUND.value,
            ))
            return OperationResult.fail(ErrorCode.NOT_FOUND, USER_NOT_FOUND)

        if not self._credentials.verify(profile, password):
            self._session.auth_error = INVALID_CREDENTIALS
            self._audit.log(AuditEventBuilder.login_attempt(
                identifier=identifier,
                succeeded=False,
                user_id=profile.id,
                error_code=ErrorCode.INVALID_CREDENTIALS.value,
            ))
            return OperationResult.fail(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS)

        self._activate(profile)
        self._audit.log(AuditEventBuilder.login_attempt(
            identifier=identifier,
            succeeded=True,
            user_id=profile.id,
        ))
        return OperationResult.ok(profile)

    def start_signup(self, identifier: str) -> OperationResult:
        """
        Begin signup for a new identifier.

        The session becomes authenticated with onboarding pending, so a
        restart resumes onboarding instead of returning to login.
        """
        identifier = identifier.strip()
        self._session.auth_error = ""

        if self.check_user_exists(identifier):
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "User already exists")

        self._session.login_identifier = identifier
        self._session.profile = None
        self._session.is_onboarding_complete = False
        self._session.is_authenticated = True

        self._repository.set_session_authenticated()
        self._repository.clear_current_user_id()

        self._audit.log_changed(
            AuditEventType.SIGNUP_STARTED,
            "user",
            None,
            "Signup started",
            details={"identifier": identifier},
        )
        return OperationResult.ok()

    def complete_onboarding(
        self,
        name: str = "",
        email: str = "",
        mobile: str = "",
        password: str = "",
        language: str = "",
        currency: str = "",
    ) -> OperationResult:
        """
        Create the profile and link its identifiers.

        The identifier used at signup is linked too when neither email
        nor mobile already covers it.
        """
        validation = self._validator.validate_onboarding(email, mobile)
        if validation.has_errors:
            self._audit.log_validation_failed(
                entity_type="user",
                issues=[issue.model_dump() for issue in validation.issues],
            )
            return OperationResult.invalid(validation)

        profile = UserProfile(
            id=new_id(),
            name=name or "User",
            email=email,
            mobile=mobile,
            language=language or self._settings.default_language,
            currency=currency or self._settings.default_currency,
            password=self._credentials.prepare(password),
        )
        self._repository.put_profile(profile)

        identifiers = profile.identifiers
        login_identifier = self._session.login_identifier
        if login_identifier and self._repository.resolve_identifier(login_identifier) is None:
            identifiers.append(login_identifier)
        self._repository.link_identifiers(profile.id, identifiers)

        self._activate(profile)
        self._audit.log_changed(
            AuditEventType.ONBOARDING_COMPLETED,
            "user",
            profile.id,
            "Onboarding completed",
        )
        return OperationResult.ok(profile)

    def logout(self) -> None:
        user_id = self._session.profile.id if self._session.profile else None

        self._repository.clear_session()
        self._repository.clear_current_user_id()
        self._session.reset()

        self._audit.log_changed(AuditEventType.LOGOUT, "user", user_id, "User logged out")

    def check_user_exists(self, identifier: str) -> bool:
        return self._repository.resolve_identifier(identifier.strip()) is not None

    def reset_password(self, identifier: str, new_password: str) -> OperationResult:
        profile = self._find_profile(identifier.strip())
        if profile is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, USER_NOT_FOUND)

        updated = profile.model_copy(update={
            "password": self._credentials.prepare(new_password),
        })
        self._repository.put_profile(updated)

        if self._session.profile and self._session.profile.id == updated.id:
            self._session.profile = updated

        self._audit.log_changed(AuditEventType.PASSWORD_RESET, "user", updated.id, "Password reset")
        return OperationResult.ok()

    # -------------------------------------------------------------------------
    # Profile & preferences
    # -------------------------------------------------------------------------

    def update_profile(self, **changes: Any) -> OperationResult:
        """
        Apply changes to the active profile and persist it.

        New email / mobile values are linked in the identity index; the
        old ones keep pointing at the same user id.
        """
        profile = self._session.profile
        if profile is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, "No active profile")

        changes.pop("id", None)
        updated = UserProfile.model_validate({**profile.model_dump(), **changes})

        self._repository.put_profile(updated)
        if updated.identifiers != profile.identifiers:
            self._repository.link_identifiers(updated.id, updated.identifiers)
        self._session.profile = updated

        self._audit.log_changed(
            AuditEventType.PROFILE_UPDATED,
            "user",
            updated.id,
            "Profile updated",
            details={"fields": sorted(key for key in changes if key != "password")},
        )
        return OperationResult.ok(updated)

    def set_user_name(self, name: str) -> OperationResult:
        return self.update_profile(name=name)

    def set_currency(self, symbol: str) -> OperationResult:
        return self.update_profile(currency=symbol)

    def set_language(self, language: str) -> OperationResult:
        return self.update_profile(language=language)

    def set_profile_picture(self, data_url: str) -> OperationResult:
        return self.update_profile(profile_picture=data_url)

    def get_theme(self) -> Theme:
        return self._repository.get_theme()

    def set_theme(self, theme: Theme) -> None:
        self._repository.set_theme(theme)

    # -------------------------------------------------------------------------
    # Biometric login
    # -------------------------------------------------------------------------

    def check_biometric_availability(self, identifier: str) -> bool:
        """Whether the identifier's profile has a registered credential."""
        profile = self._find_profile(identifier.strip())
        return bool(
            profile
            and profile.biometric_enabled
            and profile.biometric_credential_id
        )

    async def register_biometric(self) -> OperationResult:
        profile = self._session.profile
        if profile is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, "No active profile")
        if not self.is_biometric_supported:
            return OperationResult.fail(
                ErrorCode.VALIDATION_ERROR,
                "Biometric authentication is not available on this device",
            )

        try:
            credential_id = await self._biometric.register(profile)
        except BiometricError as e:
            logger.warning("biometric_registration_failed", error=str(e))
            return OperationResult.fail(ErrorCode.INVALID_CREDENTIALS, str(e))

        result = self.update_profile(
            biometric_enabled=True,
            biometric_credential_id=credential_id,
        )
        self._audit.log_changed(
            AuditEventType.BIOMETRIC_REGISTERED,
            "user",
            profile.id,
            "Biometric credential registered",
        )
        return result

    async def verify_biometric_login(self, identifier: str) -> OperationResult:
        identifier = identifier.strip()
        profile = self._find_profile(identifier)
        if profile is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, USER_NOT_FOUND)
        if not (profile.biometric_enabled and profile.biometric_credential_id):
            return OperationResult.fail(
                ErrorCode.VALIDATION_ERROR,
                "Biometric login is not set up for this user",
            )
        if self._biometric is None:
            return OperationResult.fail(
                ErrorCode.VALIDATION_ERROR,
                "Biometric authentication is not available on this device",
            )

        try:
            verified = await self._biometric.verify(profile.biometric_credential_id)
        except BiometricError as e:
            logger.warning("biometric_verification_failed", error=str(e))
            verified = False

        if not verified:
            self._audit.log(AuditEventBuilder.login_attempt(
                identifier=identifier,
                succeeded=False,
                user_id=profile.id,
                error_code=ErrorCode.INVALID_CREDENTIALS.value,
            ))
            return OperationResult.fail(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS)

        self._session.login_identifier = identifier
        self._activate(profile)
        self._audit.log(AuditEventBuilder.login_attempt(
            identifier=identifier,
            succeeded=True,
            user_id=profile.id,
        ))
        return OperationResult.ok(profile)

    # -------------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------------

    def adopt_profile(self, profile: UserProfile) -> None:
        """
        Make a profile from a backup the active user.

        Writes it into the profile map, points its identifiers at its id
        and logs the session in with onboarding complete.
        """
        self._repository.put_profile(profile)
        self._repository.link_identifiers(profile.id, profile.identifiers)
        self._activate(profile)

    def replace_active_profile(self, profile: UserProfile) -> bool:
        """Overwrite the active profile if the ids match. Returns True if it did."""
        current = self._session.profile
        if current is None or current.id != profile.id:
            return False
        self._repository.put_profile(profile)
        self._session.profile = profile
        return True
