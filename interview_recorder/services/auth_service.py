"""Authentication service backed by Supabase auth."""

import logging
from typing import Any, Callable, Optional

from supabase import Client

from ..exceptions import AuthError, NotAuthenticatedError
from ..models.recording import Identity

logger = logging.getLogger(__name__)

AuthListener = Callable[[str, Optional[Identity]], None]


def identity_from_user(user: Any) -> Identity:
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(id=str(user.id), email=user.email, full_name=metadata.get("full_name"))


class AuthService:
    """Current identity, sign-in/sign-out and change notifications."""

    def __init__(self, client: Client):
        self.client = client

    def current_identity(self) -> Optional[Identity]:
        """The signed-in identity, or None."""
        try:
            session = self.client.auth.get_session()
        except Exception as e:
            raise AuthError(f"Could not restore session: {e}") from e
        if not session or not getattr(session, "user", None):
            return None
        return identity_from_user(session.user)

    def require_identity(self) -> Identity:
        identity = self.current_identity()
        if identity is None:
            raise NotAuthenticatedError()
        return identity

    def sign_in(self, email: str, password: str) -> Identity:
        logger.info(f"Signing in {email}")
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise AuthError(str(e) or "Sign in failed") from e
        if not response.user:
            raise AuthError("Sign in failed")
        return identity_from_user(response.user)

    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        """Register a new account.

        Returns:
            The identity when a session was created immediately, None when
            the account still needs email confirmation
        """
        logger.info(f"Signing up {email}")
        try:
            response = self.client.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            raise AuthError(str(e) or "Sign up failed") from e
        if response.user is None or response.session is None:
            return None
        return identity_from_user(response.user)

    def sign_out(self) -> None:
        logger.info("Signing out")
        try:
            self.client.auth.sign_out()
        except Exception as e:
            raise AuthError(str(e) or "Sign out failed") from e

    def on_change(self, listener: AuthListener) -> Callable[[], None]:
        """Subscribe to sign-in/sign-out changes. Returns an unsubscribe function."""
        def _forward(event, session) -> None:
            user = getattr(session, "user", None) if session else None
            listener(str(event), identity_from_user(user) if user else None)

        subscription = self.client.auth.on_auth_state_change(_forward)
        return subscription.unsubscribe
