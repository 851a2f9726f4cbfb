"""
Access Gate

Route-level access decisions for the two view trees. Consulted by route
resolution before any protected view is instantiated.

Rules:
- Admin routes render for an admin session and show the admin login
  otherwise. They never redirect: the admin entry point must stay reachable
  so credentials can be presented.
- User routes render for a user session. The landing view shows the
  login/register wrapper to everyone else; any other user route redirects
  to the landing view. An admin session does not satisfy a user route.
- Unknown paths redirect to the landing view regardless of state.
"""

import re
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from apexfx.config import SessionSettings, get_settings
from apexfx.errors import InvalidTransition
from apexfx.models.session import AccessDecision, SessionMode


class AccessEvent(str, Enum):
    """Session events that move the access state machine."""
    LOGIN = "login"
    ADMIN_LOGIN = "admin_login"
    LOGOUT = "logout"


TRANSITIONS: dict[tuple[SessionMode, AccessEvent], SessionMode] = {
    (SessionMode.ANONYMOUS, AccessEvent.LOGIN): SessionMode.USER,
    (SessionMode.ANONYMOUS, AccessEvent.ADMIN_LOGIN): SessionMode.ADMIN,
    (SessionMode.USER, AccessEvent.LOGOUT): SessionMode.ANONYMOUS,
    (SessionMode.ADMIN, AccessEvent.LOGOUT): SessionMode.ANONYMOUS,
}


def transition(state: SessionMode, event: AccessEvent) -> SessionMode:
    """
    Next access state.

    Raises:
        InvalidTransition: No edge for (state, event)
    """
    try:
        return TRANSITIONS[(SessionMode(state), AccessEvent(event))]
    except (KeyError, ValueError):
        raise InvalidTransition(f"No transition from {state!s} on {event!s}")


def normalize_path(path: Optional[str]) -> str:
    """Strip query string, fragment and trailing slash; empty means root."""
    # Collapse first so a leading '//' is not parsed as a network location
    path = re.sub(r"/{2,}", "/", path or "/")
    path = urlsplit(path).path or "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def compile_route(pattern: str) -> re.Pattern:
    """Turn '/admin/users/{user_id}' into a regex matching one segment per placeholder."""
    parts = re.split(r"(\{[^/{}]+\})", normalize_path(pattern))
    regex = "".join(
        "[^/]+" if part.startswith("{") else re.escape(part)
        for part in parts
    )
    return re.compile(f"^{regex}$")


class AccessGate:
    """Pure decision function over (session mode, requested path)."""

    def __init__(self, settings: Optional[SessionSettings] = None):
        self._settings = settings or get_settings()
        self._landing = normalize_path(self._settings.landing_path)
        self._admin_prefix = normalize_path(self._settings.admin_path_prefix)
        self._admin_routes = [compile_route(p) for p in self._settings.admin_routes]
        self._user_paths = {normalize_path(p) for p in self._settings.user_paths}
        self._user_paths.add(self._landing)

    @property
    def landing_path(self) -> str:
        return self._landing

    def is_admin_path(self, path: str) -> bool:
        path = normalize_path(path)
        if path != self._admin_prefix and not path.startswith(self._admin_prefix + "/"):
            return False
        return any(route.match(path) for route in self._admin_routes)

    def is_user_path(self, path: str) -> bool:
        return normalize_path(path) in self._user_paths

    def resolve(self, state: SessionMode, path: str) -> AccessDecision:
        """Decide whether to render, show a login form, or redirect."""
        state = SessionMode(state)
        path = normalize_path(path)

        if self.is_admin_path(path):
            if state == SessionMode.ADMIN:
                return AccessDecision.render(path)
            return AccessDecision.show_login(path)

        if self.is_user_path(path):
            if state == SessionMode.USER:
                return AccessDecision.render(path)
            if path == self._landing:
                return AccessDecision.show_login(path)
            return AccessDecision.redirect(path, self._landing)

        return AccessDecision.redirect(path, self._landing)

    transition = staticmethod(transition)
