# modules/session_gate.py
# Guards a role-area (admin / teacher / parent / student) of the portal.

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from auth import Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleArea:
    role: str
    title: str
    login_path: str
    dashboard_path: str


ROLE_AREAS = {
    "admin": RoleArea("admin", "Admin Portal", "/admin/login", "/admin/dashboard"),
    "teacher": RoleArea("teacher", "Teacher Portal", "/teacher/login", "/teacher/dashboard"),
    "parent": RoleArea("parent", "Parent Portal", "/parent/login", "/parent/dashboard"),
    "student": RoleArea("student", "Student Portal", "/student/login", "/student/dashboard"),
}


class GateState(enum.Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    REDIRECTED = "redirected"
    FORBIDDEN = "forbidden"


class SessionGate:
    """
    Subscribes to the identity provider and decides what a protected area shows.

    `navigator` needs a ``redirect(path)`` method and `notifier` (for logout)
    needs ``success(title, text)`` and ``error(title, text)``.

    The identity's role claim must match the area: a signed-in user of another
    role is sent to their own dashboard, an identity without a known role is
    signed out and sent to this area's login page.
    """

    def __init__(self, provider, navigator, area: RoleArea):
        self.provider = provider
        self.navigator = navigator
        self.area = area
        self.state = GateState.LOADING
        self.identity: Optional[Identity] = None
        self._unsubscribe = None
        self._redirected = False
        self._logging_out = False

    def __enter__(self):
        self.mount()
        return self

    def __exit__(self, *exc):
        self.unmount()
        return False

    # ---------- lifecycle ----------
    def mount(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.provider.on_auth_state_changed(self._on_auth_state)

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def _redirect(self, path: str, state: GateState = GateState.REDIRECTED) -> None:
        self.identity = None
        self.state = state
        if self._redirected:
            return
        self._redirected = True
        logger.info("Gate %s redirecting to %s", self.area.role, path)
        self.navigator.redirect(path)

    def _on_auth_state(self, identity: Optional[Identity]) -> None:
        if identity is None:
            if self._logging_out:
                self.identity = None
                return
            self._redirect(self.area.login_path)
            return

        if identity.role == self.area.role:
            self.identity = identity
            self.state = GateState.AUTHENTICATED
            return

        own_area = ROLE_AREAS.get(identity.role)
        if own_area is not None:
            logger.warning("uid=%s (%s) denied access to %s area", identity.uid, identity.role, self.area.role)
            self._redirect(own_area.dashboard_path, GateState.FORBIDDEN)
            return

        logger.warning("uid=%s has no portal role, signing out", identity.uid)
        self.provider.sign_out()
        self._redirect(self.area.login_path)

    # ---------- rendering ----------
    def render(self, children: Callable[[Identity], None], loading: Optional[Callable[[], None]] = None):
        if self.state is GateState.LOADING:
            if loading is not None:
                loading()
            return None
        if self.state is GateState.AUTHENTICATED and self.identity is not None:
            return children(self.identity)
        return None

    # ---------- logout ----------
    def logout(self, notifier) -> bool:
        self._logging_out = True
        try:
            self.provider.sign_out()
        except Exception:
            logger.exception("Sign-out failed")
            notifier.error("Logout Failed", "Could not log you out. Please try again.")
            return False
        finally:
            self._logging_out = False
        notifier.success("Logged Out", "You have been successfully logged out.")
        self._redirect(self.area.login_path)
        return True
