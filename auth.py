# auth.py: identity provider + email/phone login resolution

import re
import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from db import ROLES, AccountStore, verify_password

logger = logging.getLogger(__name__)

SESSION_KEY = "identity"

PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6

# User-facing messages
MSG_NO_PHONE_USER = "No user found with this phone number."
MSG_NO_LINKED_EMAIL = "No email associated with this phone number."
MSG_BAD_IDENTIFIER = "Please enter a valid email or phone number."
MSG_INVALID_CREDENTIALS = "Invalid credentials. Please check your email/phone and password."
MSG_INVALID_EMAIL = "The email address is not valid."
MSG_SIGN_IN_FAILED = "Failed to sign in. Please try again later."
MSG_LOOKUP_FAILED = "An error occurred while looking up your account. Please try again."
MSG_SIGNED_IN = "Login successful."
MSG_NO_ACCESS = "You do not have permission to log in yet. Please ask an administrator to grant you access."

# Wrong user and wrong password share one message.
PROVIDER_ERROR_MESSAGES = {
    "user-not-found": MSG_INVALID_CREDENTIALS,
    "wrong-password": MSG_INVALID_CREDENTIALS,
    "invalid-credential": MSG_INVALID_CREDENTIALS,
    "invalid-email": MSG_INVALID_EMAIL,
}


class ProviderError(Exception):
    """Failure reported by the identity provider, identified by `code`."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


@dataclass(frozen=True)
class Identity:
    uid: int
    email: str
    role: Optional[str]
    display_name: Optional[str]
    signed_in_at: float


@dataclass(frozen=True)
class SignInResult:
    success: bool
    message: str
    identity: Optional[Identity] = None
    email: Optional[str] = None


def message_for_provider_error(code: str) -> str:
    return PROVIDER_ERROR_MESSAGES.get(code, MSG_SIGN_IN_FAILED)


# =========================
# Identity provider
# =========================
class LocalIdentityProvider:
    """
    Password identity provider backed by the account store.

    The signed-in identity lives in `state` (``st.session_state`` in the app,
    a plain dict in tests), so every visitor has their own session.
    Observers registered with `on_auth_state_changed` get the current
    identity immediately and again on every sign-in / sign-out.
    """

    def __init__(self, accounts: AccountStore, state, max_age_seconds: Optional[int] = None,
                 clock: Callable[[], float] = time.time):
        self.accounts = accounts
        self.state = state
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._listeners = []

    # ---------- observers ----------
    def on_auth_state_changed(self, callback: Callable[[Optional[Identity]], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        callback(self.current_identity())
        return unsubscribe

    def _notify(self, identity: Optional[Identity]) -> None:
        for callback in list(self._listeners):
            callback(identity)

    # ---------- session ----------
    def current_identity(self) -> Optional[Identity]:
        identity = self.state.get(SESSION_KEY)
        if identity is None:
            return None
        if self.max_age_seconds and self._clock() - identity.signed_in_at > self.max_age_seconds:
            logger.info("Session for uid=%s expired", identity.uid)
            self.state.pop(SESSION_KEY, None)
            return None
        return identity

    def sign_in_with_password(self, email: str, password: str) -> Identity:
        if not EMAIL_PATTERN.match(email or ""):
            raise ProviderError("invalid-email")
        account = self.accounts.get_by_email(email)
        if account is None:
            raise ProviderError("user-not-found")
        if not verify_password(password or "", account.password_hash):
            raise ProviderError("wrong-password")

        identity = Identity(
            uid=account.id,
            email=account.email,
            role=account.role if account.role in ROLES else None,
            display_name=account.display_name,
            signed_in_at=self._clock(),
        )
        self.state[SESSION_KEY] = identity
        logger.info("Signed in uid=%s role=%s", identity.uid, identity.role)
        self._notify(identity)
        return identity

    def sign_out(self) -> None:
        identity = self.state.pop(SESSION_KEY, None)
        if identity is not None:
            logger.info("Signed out uid=%s", identity.uid)
        self._notify(None)

    def create_user(self, email: str, password: str, phone_number: Optional[str] = None,
                    display_name: Optional[str] = None):
        """Create an account without a role; an administrator grants access later."""
        if not EMAIL_PATTERN.match(email or ""):
            raise ProviderError("invalid-email")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ProviderError("weak-password")
        if self.accounts.get_by_email(email) is not None:
            raise ProviderError("email-already-in-use")
        return self.accounts.create_account(email, password, phone_number=phone_number,
                                            display_name=display_name)


# =========================
# Identifier resolver
# =========================
def is_phone_shaped(identifier: str) -> bool:
    return bool(PHONE_PATTERN.match(identifier))


class IdentifierResolver:
    """Turns an email-or-phone login identifier into a provider sign-in."""

    def __init__(self, accounts: AccountStore, provider: LocalIdentityProvider):
        self.accounts = accounts
        self.provider = provider

    def _email_for_phone(self, phone: str):
        """Returns (email, error_message)."""
        try:
            matches = self.accounts.find_by_phone(phone)
        except Exception:
            logger.exception("Account lookup by phone failed")
            return None, MSG_LOOKUP_FAILED

        if not matches:
            return None, MSG_NO_PHONE_USER
        if len(matches) > 1:
            # duplicates are not rejected: the oldest account wins
            logger.warning("%d accounts share one phone number; using id=%s", len(matches), matches[0].id)
        email = matches[0].email
        if not email:
            return None, MSG_NO_LINKED_EMAIL
        return email, None

    def resolve(self, identifier: str, password: str) -> SignInResult:
        raw = identifier or ""

        # phone numbers are looked up exactly as typed
        if is_phone_shaped(raw):
            email, error = self._email_for_phone(raw)
            if error:
                return SignInResult(False, error)
        elif "@" not in raw:
            return SignInResult(False, MSG_BAD_IDENTIFIER)
        else:
            email = raw.strip()

        try:
            identity = self.provider.sign_in_with_password(email, password)
        except ProviderError as e:
            logger.info("Sign-in rejected: %s", e.code)
            return SignInResult(False, message_for_provider_error(e.code))
        except Exception:
            logger.exception("Identity provider failed during sign-in")
            return SignInResult(False, MSG_SIGN_IN_FAILED)

        if identity.role is None:
            # no role claim yet
            logger.info("Sign-in refused for uid=%s: no role granted", identity.uid)
            self.provider.sign_out()
            return SignInResult(False, MSG_NO_ACCESS, email=email)

        return SignInResult(True, MSG_SIGNED_IN, identity=identity, email=email)
