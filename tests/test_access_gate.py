"""Tests for the AccessGate and the session state machine."""

import pytest

from apexfx.access import AccessEvent, AccessGate, normalize_path, transition
from apexfx.errors import InvalidTransition
from apexfx.models import AccessAction, SessionMode


USER_ROUTES = ["/deposit", "/withdraw", "/transactions", "/onboarding", "/settings"]
ADMIN_ROUTES = ["/admin", "/admin/users", "/admin/users/3f1c9a"]


@pytest.fixture
def gate(settings):
    return AccessGate(settings)


class TestNormalizePath:
    """Tests for normalize_path."""

    @pytest.mark.parametrize("raw,expected", [
        (None, "/"),
        ("", "/"),
        ("/", "/"),
        ("/deposit/", "/deposit"),
        ("deposit", "/deposit"),
        ("//admin//users/", "/admin/users"),
        ("/transactions?page=2#top", "/transactions"),
    ])
    def test_normalize(self, raw, expected):
        """Test query, fragment and slash normalisation."""
        assert normalize_path(raw) == expected


class TestAdminRoutes:
    """Admin routes never redirect."""

    @pytest.mark.parametrize("path", ADMIN_ROUTES)
    @pytest.mark.parametrize("state", [SessionMode.ANONYMOUS, SessionMode.USER])
    def test_shows_login_without_admin_session(self, gate, state, path):
        """Admin routes show the admin login to non-admins."""
        decision = gate.resolve(state, path)
        assert decision.action == AccessAction.SHOW_LOGIN
        assert decision.redirect_to is None

    @pytest.mark.parametrize("path", ADMIN_ROUTES)
    def test_renders_for_admin(self, gate, path):
        """Test admin routes render for an admin session."""
        assert gate.resolve(SessionMode.ADMIN, path).action == AccessAction.RENDER

    def test_unmatched_admin_path_redirects(self, gate):
        """Unconfigured paths under the admin prefix redirect to landing."""
        decision = gate.resolve(SessionMode.ADMIN, "/admin/settings/extra")
        assert decision.action == AccessAction.REDIRECT
        assert decision.redirect_to == "/"

    def test_prefix_is_segment_bound(self, gate):
        """Test the admin prefix only matches whole segments."""
        assert not gate.is_admin_path("/administrator")


class TestUserRoutes:
    """User routes render for user sessions only."""

    @pytest.mark.parametrize("path", ["/"] + USER_ROUTES)
    def test_renders_for_user(self, gate, path):
        """Test user routes render for a user session."""
        assert gate.resolve(SessionMode.USER, path).action == AccessAction.RENDER

    @pytest.mark.parametrize("state", [SessionMode.ANONYMOUS, SessionMode.ADMIN])
    def test_landing_shows_login(self, gate, state):
        """The landing view shows the login wrapper to non-users."""
        decision = gate.resolve(state, "/")
        assert decision.action == AccessAction.SHOW_LOGIN
        assert decision.path == "/"

    @pytest.mark.parametrize("path", USER_ROUTES)
    @pytest.mark.parametrize("state", [SessionMode.ANONYMOUS, SessionMode.ADMIN])
    def test_protected_routes_redirect_to_landing(self, gate, state, path):
        """Test protected user routes redirect to landing."""
        decision = gate.resolve(state, path)
        assert decision.action == AccessAction.REDIRECT
        assert decision.path == path
        assert decision.redirect_to == "/"

    def test_trailing_slash_is_same_route(self, gate):
        """Test a trailing slash resolves to the same route."""
        assert gate.resolve(SessionMode.USER, "/deposit/").action == AccessAction.RENDER


class TestUnknownRoutes:
    """Unknown paths redirect to the landing view regardless of state."""

    @pytest.mark.parametrize("state", list(SessionMode))
    def test_unknown_redirects(self, gate, state):
        """Test unknown paths redirect in every state."""
        decision = gate.resolve(state, "/does-not-exist")
        assert decision.action == AccessAction.REDIRECT
        assert decision.redirect_to == "/"

    def test_custom_landing_path(self, settings):
        """Test a configured landing path."""
        custom = settings.model_copy(update={"landing_path": "/home"})
        gate = AccessGate(custom)
        assert gate.landing_path == "/home"
        assert gate.resolve(SessionMode.ANONYMOUS, "/home").action == AccessAction.SHOW_LOGIN
        assert gate.resolve(SessionMode.ANONYMOUS, "/nowhere").redirect_to == "/home"


class TestTransitions:
    """Tests for the access state machine."""

    @pytest.mark.parametrize("state,event,expected", [
        (SessionMode.ANONYMOUS, AccessEvent.LOGIN, SessionMode.USER),
        (SessionMode.ANONYMOUS, AccessEvent.ADMIN_LOGIN, SessionMode.ADMIN),
        (SessionMode.USER, AccessEvent.LOGOUT, SessionMode.ANONYMOUS),
        (SessionMode.ADMIN, AccessEvent.LOGOUT, SessionMode.ANONYMOUS),
    ])
    def test_valid_transitions(self, state, event, expected):
        """Test every permitted state transition."""
        assert transition(state, event) == expected
        assert AccessGate.transition(state.value, event.value) == expected

    @pytest.mark.parametrize("state,event", [
        (SessionMode.ANONYMOUS, AccessEvent.LOGOUT),
        (SessionMode.USER, AccessEvent.ADMIN_LOGIN),
        (SessionMode.ADMIN, AccessEvent.LOGIN),
        (SessionMode.USER, "teleport"),
    ])
    def test_invalid_transitions(self, state, event):
        """Test undefined transitions raise InvalidTransition."""
        with pytest.raises(InvalidTransition):
            transition(state, event)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
