# tests/conftest.py
import pytest

import db
from auth import IdentifierResolver, LocalIdentityProvider
from db import AccountStore


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    # full-strength PBKDF2 only slows the suite down
    monkeypatch.setattr(db, "PBKDF2_ITERATIONS", 1000)


@pytest.fixture
def store(tmp_path):
    return AccountStore(str(tmp_path / "school.db"))


@pytest.fixture
def session_state():
    return {}


@pytest.fixture
def provider(store, session_state):
    return LocalIdentityProvider(store, session_state)


@pytest.fixture
def resolver(store, provider):
    return IdentifierResolver(store, provider)


class RecordingNavigator:
    def __init__(self):
        self.redirects = []

    def redirect(self, path):
        self.redirects.append(path)


class RecordingNotifier:
    def __init__(self):
        self.notices = []

    def success(self, title, text):
        self.notices.append(("success", title, text))

    def error(self, title, text):
        self.notices.append(("error", title, text))


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def notifier():
    return RecordingNotifier()
