import logging

import streamlit as st

from auth import IdentifierResolver, LocalIdentityProvider
from config import configure_logging, load_settings
from db import AccountStore, seed_demo_accounts
from modules.faq_assistant import FaqAssistant
from modules.openai_client import make_openai_client
from modules.portal_pages import (
    StreamlitNavigator,
    StreamlitNotifier,
    render_dashboard,
    render_home,
    render_login,
    show_flash_messages,
)
from modules.routing import route
from modules.session_gate import ROLE_AREAS

logger = logging.getLogger(__name__)


# =========================
# 1️⃣ App Config
# =========================
st.set_page_config(page_title="🏫 School Portal", layout="wide")


@st.cache_resource(show_spinner=False)
def _settings():
    settings = load_settings()
    configure_logging(settings)
    return settings


@st.cache_resource(show_spinner=False)
def _account_store(db_path: str, seed: bool):
    store = AccountStore(db_path)
    if seed:
        added = seed_demo_accounts(store)
        if added:
            logger.info("Seeded %d demo accounts", added)
    return store


@st.cache_resource(show_spinner=False)
def _assistant(model: str, timeout: float):
    return FaqAssistant(make_openai_client(_settings()), model=model, timeout=timeout)


settings = _settings()
accounts = _account_store(settings.db_path, settings.seed_demo_accounts)
assistant = _assistant(settings.faq_model, settings.faq_timeout_seconds)

# per-visitor clients
provider = LocalIdentityProvider(accounts, st.session_state, max_age_seconds=settings.session_max_age_seconds)
resolver = IdentifierResolver(accounts, provider)
navigator = StreamlitNavigator()
notifier = StreamlitNotifier()


# =========================
# 2️⃣ Routing
# =========================
show_flash_messages()
path = st.query_params.get("path", "/")
role, page = route(path)

if role is None:
    if path not in ("/", ""):
        st.warning(f"Page {path} not found.")
    render_home(navigator)
elif page == "login":
    render_login(ROLE_AREAS[role], resolver, provider, navigator, notifier)
else:
    render_dashboard(ROLE_AREAS[role], provider, navigator, notifier, assistant)
