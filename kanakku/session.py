"""Session state of the single local user."""

from typing import Optional

from pydantic import BaseModel

from kanakku.models.profile import UserProfile


class SessionContext(BaseModel):
    """
    What the presentation layer needs to pick a screen.

    authenticated + onboarding complete -> dashboard
    authenticated only                  -> onboarding (signup in progress)
    neither                             -> login
    """

    profile: Optional[UserProfile] = None
    is_authenticated: bool = False
    is_onboarding_complete: bool = False
    login_identifier: str = ""
    auth_error: str = ""

    def reset(self) -> None:
        self.profile = None
        self.is_authenticated = False
        self.is_onboarding_complete = False
        self.auth_error = ""

    def activate(self, profile: UserProfile) -> None:
        """Mark the session as fully logged in with this profile."""
        self.profile = profile
        self.is_authenticated = True
        self.is_onboarding_complete = True
        self.auth_error = ""
