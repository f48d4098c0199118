# tests/test_auth.py
import pytest

import auth
from auth import (
    MSG_BAD_IDENTIFIER,
    MSG_INVALID_CREDENTIALS,
    MSG_INVALID_EMAIL,
    MSG_LOOKUP_FAILED,
    MSG_NO_ACCESS,
    MSG_NO_LINKED_EMAIL,
    MSG_NO_PHONE_USER,
    MSG_SIGN_IN_FAILED,
    IdentifierResolver,
    LocalIdentityProvider,
    ProviderError,
    is_phone_shaped,
)


class SpyStore:
    """Wraps the real store and records phone lookups."""

    def __init__(self, store):
        self.store = store
        self.phone_lookups = []

    def find_by_phone(self, phone):
        self.phone_lookups.append(phone)
        return self.store.find_by_phone(phone)

    def get_by_email(self, email):
        return self.store.get_by_email(email)


class SpyProvider:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def sign_in_with_password(self, email, password):
        self.calls.append((email, password))
        if self.error is not None:
            raise self.error
        return auth.Identity(uid=1, email=email, role="parent", display_name=None, signed_in_at=0.0)


@pytest.mark.parametrize("identifier", ["9876543210", "+91 98765 43210", "(080) 1234-5678", "+1-555-0100"])
def test_phone_shaped_identifiers_go_through_phone_lookup(store, identifier):
    store.create_account("p@school.local", "secret1", phone_number=identifier, role="parent")
    spy_store = SpyStore(store)
    provider = SpyProvider()
    result = IdentifierResolver(spy_store, provider).resolve(identifier, "secret1")

    assert spy_store.phone_lookups == [identifier]
    assert provider.calls == [("p@school.local", "secret1")]
    assert result.success
    assert result.email == "p@school.local"


@pytest.mark.parametrize("identifier", ["user@example.com", "not-an-email", "98765abc"])
def test_non_phone_identifiers(identifier):
    assert not is_phone_shaped(identifier)


def test_unknown_phone_number(resolver):
    result = resolver.resolve("9876543210", "whatever")
    assert not result.success
    assert result.message == "No user found with this phone number."
    assert result.message == MSG_NO_PHONE_USER


def test_phone_number_without_linked_email(store, resolver):
    store.create_account(None, "secret1", phone_number="9876543210", role="parent")
    result = resolver.resolve("9876543210", "secret1")
    assert not result.success
    assert result.message == "No email associated with this phone number."
    assert result.message == MSG_NO_LINKED_EMAIL


def test_phone_lookup_is_verbatim(store, resolver):
    store.create_account("p@school.local", "secret1", phone_number="+91 9876543210", role="parent")
    result = resolver.resolve("9876543210", "secret1")
    assert result.message == MSG_NO_PHONE_USER


def test_phone_lookup_keeps_surrounding_whitespace(store):
    store.create_account("p@school.local", "secret1", phone_number="9876543210", role="parent")
    spy_store = SpyStore(store)
    provider = SpyProvider()
    result = IdentifierResolver(spy_store, provider).resolve(" 9876543210", "secret1")

    assert spy_store.phone_lookups == [" 9876543210"]
    assert result.message == MSG_NO_PHONE_USER
    assert provider.calls == []


def test_email_identifier_is_stripped(store, resolver):
    store.create_account("user@example.com", "correct-horse", role="student")
    assert resolver.resolve("  user@example.com ", "correct-horse").success


def test_duplicate_phone_numbers_first_account_wins(store, provider):
    store.create_account("first@school.local", "secret1", phone_number="9876543210", role="parent")
    store.create_account("second@school.local", "secret2", phone_number="9876543210", role="parent")
    resolver = IdentifierResolver(store, provider)

    ok = resolver.resolve("9876543210", "secret1")
    assert ok.success
    assert ok.email == "first@school.local"

    # the second account's password is checked against the first account
    rejected = resolver.resolve("9876543210", "secret2")
    assert not rejected.success
    assert rejected.message == MSG_INVALID_CREDENTIALS


def test_malformed_identifier_never_reaches_store_or_provider(store):
    spy_store = SpyStore(store)
    provider = SpyProvider()
    result = IdentifierResolver(spy_store, provider).resolve("not-an-email", "secret1")

    assert not result.success
    assert result.message == MSG_BAD_IDENTIFIER
    assert spy_store.phone_lookups == []
    assert provider.calls == []


def test_email_sign_in_success(store, resolver, session_state):
    store.create_account("user@example.com", "correct-horse", role="student", display_name="Asha")
    result = resolver.resolve("user@example.com", "correct-horse")

    assert result.success
    assert result.identity.email == "user@example.com"
    assert result.identity.role == "student"
    assert session_state[auth.SESSION_KEY] == result.identity


def test_email_sign_in_ignores_case(store, resolver):
    store.create_account("Asha.Rao@Example.com", "correct-horse", role="teacher")
    result = resolver.resolve("ASHA.RAO@example.COM", "correct-horse")

    assert result.success
    assert result.identity.email == "asha.rao@example.com"


def test_account_without_role_cannot_sign_in(store, resolver, session_state):
    store.create_account("pending@school.local", "secret1")
    result = resolver.resolve("pending@school.local", "secret1")

    assert not result.success
    assert result.message == MSG_NO_ACCESS
    assert result.identity is None
    assert auth.SESSION_KEY not in session_state


def test_phone_sign_in_without_role_is_refused(store, resolver, provider):
    store.create_account("pending@school.local", "secret1", phone_number="9876543210")
    seen = []
    provider.on_auth_state_changed(seen.append)
    result = resolver.resolve("9876543210", "secret1")

    assert result.message == MSG_NO_ACCESS
    assert seen[-1] is None
    assert provider.current_identity() is None


def test_wrong_password_and_unknown_user_share_one_message(store, resolver):
    store.create_account("user@example.com", "correct-horse", role="student")
    wrong_password = resolver.resolve("user@example.com", "nope-nope")
    unknown_user = resolver.resolve("ghost@example.com", "correct-horse")
    assert wrong_password.message == unknown_user.message == MSG_INVALID_CREDENTIALS


def test_invalid_email_code_has_its_own_message(resolver):
    result = resolver.resolve("user@localhost", "secret1")
    assert not result.success
    assert result.message == MSG_INVALID_EMAIL


def test_unmapped_provider_code_gets_generic_message(store):
    provider = SpyProvider(error=ProviderError("too-many-requests"))
    result = IdentifierResolver(store, provider).resolve("user@example.com", "secret1")
    assert result.message == MSG_SIGN_IN_FAILED


def test_unexpected_provider_exception_is_contained(store):
    provider = SpyProvider(error=ConnectionError("network down"))
    result = IdentifierResolver(store, provider).resolve("user@example.com", "secret1")
    assert not result.success
    assert result.message == MSG_SIGN_IN_FAILED


def test_lookup_exception_is_contained():
    class BrokenStore:
        def find_by_phone(self, phone):
            raise RuntimeError("database is locked")

    provider = SpyProvider()
    result = IdentifierResolver(BrokenStore(), provider).resolve("9876543210", "secret1")
    assert not result.success
    assert result.message == MSG_LOOKUP_FAILED
    assert provider.calls == []


# ---------- provider ----------
def test_auth_state_listener_gets_current_state_then_changes(store, provider):
    store.create_account("t@school.local", "secret1", role="teacher")
    seen = []
    unsubscribe = provider.on_auth_state_changed(seen.append)
    assert seen == [None]

    identity = provider.sign_in_with_password("t@school.local", "secret1")
    provider.sign_out()
    assert seen == [None, identity, None]

    unsubscribe()
    provider.sign_in_with_password("t@school.local", "secret1")
    assert len(seen) == 3


def test_unknown_role_claim_is_dropped(store, provider):
    store.create_account("x@school.local", "secret1")
    identity = provider.sign_in_with_password("x@school.local", "secret1")
    assert identity.role is None


def test_expired_session_reports_no_identity(store, session_state):
    now = [1000.0]
    provider = LocalIdentityProvider(store, session_state, max_age_seconds=60, clock=lambda: now[0])
    store.create_account("s@school.local", "secret1", role="student")
    provider.sign_in_with_password("s@school.local", "secret1")
    assert provider.current_identity() is not None

    now[0] += 61
    seen = []
    provider.on_auth_state_changed(seen.append)
    assert seen == [None]
    assert auth.SESSION_KEY not in session_state


def test_create_user_has_no_role_until_granted(store, provider):
    record = provider.create_user("new@school.local", "secret1", phone_number="9000011111")
    assert record.role is None
    assert store.set_role("new@school.local", "teacher")
    assert store.get_by_email("new@school.local").role == "teacher"


@pytest.mark.parametrize("email, password, code", [
    ("bad-email", "secret1", "invalid-email"),
    ("new@school.local", "123", "weak-password"),
])
def test_create_user_validation(provider, email, password, code):
    with pytest.raises(ProviderError) as excinfo:
        provider.create_user(email, password)
    assert excinfo.value.code == code


def test_create_user_rejects_existing_email(store, provider):
    store.create_account("taken@school.local", "secret1")
    with pytest.raises(ProviderError) as excinfo:
        provider.create_user("taken@school.local", "secret1")
    assert excinfo.value.code == "email-already-in-use"


def test_create_user_rejects_existing_email_in_other_case(store, provider):
    store.create_account("taken@school.local", "secret1")
    with pytest.raises(ProviderError) as excinfo:
        provider.create_user("Taken@School.local", "secret1")
    assert excinfo.value.code == "email-already-in-use"
