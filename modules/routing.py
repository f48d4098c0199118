# modules/routing.py
# Maps the ?path= query parameter onto a portal page.

from typing import Optional, Tuple

from modules.session_gate import ROLE_AREAS


def route(path: str) -> Tuple[Optional[str], Optional[str]]:
    """Returns (role, page) for /<role>/login and /<role>[/dashboard], else (None, None)."""
    parts = [p for p in (path or "").strip("/").split("/") if p]
    if not parts or parts[0] not in ROLE_AREAS:
        return None, None
    if len(parts) == 1 or parts[1] == "dashboard":
        return parts[0], "dashboard"
    if parts[1] == "login":
        return parts[0], "login"
    return None, None
