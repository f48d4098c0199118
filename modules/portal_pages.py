# modules/portal_pages.py
# Login pages and dashboard shells for the four portals.

import streamlit as st

from auth import ProviderError
from modules.help_widget import render_help_widget
from modules.session_gate import ROLE_AREAS, SessionGate

FLASH_KEY = "flash_messages"


# ---------- Streamlit adapters ----------
class StreamlitNavigator:
    """Routes by the ?path= query parameter."""

    def redirect(self, path: str):
        st.query_params["path"] = path
        st.rerun()


class StreamlitNotifier:
    """Queues notices so they survive the rerun that follows a redirect."""

    def _push(self, kind, title, text):
        st.session_state.setdefault(FLASH_KEY, []).append((kind, title, text))

    def success(self, title, text):
        self._push("success", title, text)

    def error(self, title, text):
        self._push("error", title, text)


def show_flash_messages():
    for kind, title, text in st.session_state.pop(FLASH_KEY, []):
        icon = "✅" if kind == "success" else "❌"
        st.toast(f"**{title}**: {text}", icon=icon)


# =========================
# Home
# =========================
def render_home(navigator):
    st.title("🏫 School Portal")
    st.caption("Choose your portal to sign in.")
    cols = st.columns(len(ROLE_AREAS))
    for col, area in zip(cols, ROLE_AREAS.values()):
        with col:
            if st.button(area.title, key=f"home_{area.role}", use_container_width=True):
                navigator.redirect(area.login_path)


# =========================
# Login
# =========================
def render_login(area, resolver, provider, navigator, notifier):
    identity = provider.current_identity()
    if identity is not None and identity.role == area.role:
        navigator.redirect(area.dashboard_path)
        return

    st.title(f"🔐 {area.title}")
    with st.form(f"login_form_{area.role}", clear_on_submit=False):
        identifier = st.text_input("Email or Phone Number")
        password = st.text_input("Password", type="password")
        login_btn = st.form_submit_button("Log In")
        create_btn = False
        if area.role == "admin":
            create_btn = st.form_submit_button("Create Account")

    if login_btn:
        if not identifier.strip() or not password:
            st.error("Please enter both your login ID and password.")
            return
        result = resolver.resolve(identifier, password)
        if result.success:
            notifier.success("Login Successful", "Redirecting to dashboard...")
            navigator.redirect(area.dashboard_path)
        else:
            st.error(f"❌ {result.message}")

    if create_btn:
        _create_account(provider, identifier, password)

    if st.button("⬅️ Back to home", key=f"back_{area.role}"):
        navigator.redirect("/")


def _create_account(provider, email, password):
    messages = {
        "email-already-in-use": "An account with this email already exists.",
        "weak-password": "Password must be at least 6 characters.",
        "invalid-email": "Please enter a valid email.",
    }
    try:
        provider.create_user(email.strip(), password)
    except ProviderError as e:
        st.error(messages.get(e.code, "An unexpected error occurred."))
        return
    st.success("Account created. Please ask an administrator to grant you access.")


# =========================
# Dashboards
# =========================
def render_dashboard(area, provider, navigator, notifier, assistant):
    gate = SessionGate(provider, navigator, area)
    with gate:
        gate.render(
            lambda identity: _dashboard_body(area, identity, gate, notifier, assistant),
            loading=lambda: st.info("Loading..."),
        )
    return gate


def _dashboard_body(area, identity, gate, notifier, assistant):
    st.sidebar.markdown(f"**{identity.display_name or identity.email}**")
    st.sidebar.caption(area.title)
    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Logout", key=f"logout_{area.role}"):
        if not gate.logout(notifier):
            show_flash_messages()

    st.title(f"📋 {area.title}")
    st.write(f"Welcome, {identity.display_name or identity.email}!")
    render_help_widget(assistant, key=f"faq_{area.role}")
