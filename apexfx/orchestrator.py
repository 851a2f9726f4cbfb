"""
Orchestrator for the ApexFX session engine

This module ties the components together and defines the flows the view
tree drives:
1. Navigation (path -> access decision, remembering where an anonymous
   visitor wanted to go)
2. Login (credentials -> session -> one-shot redirect target)

DESIGN DECISION: The redirect-after-login value belongs to the consumer's
storage. The flow only honours the contract: it is read and deleted once,
after a successful user login, and left alone when a login fails.
"""

from typing import Optional

from apexfx.access import AccessGate
from apexfx.admin import AdminMutationGateway
from apexfx.audit import AuditLogger
from apexfx.config import SessionSettings, get_settings
from apexfx.models.session import AccessAction, AccessDecision, LoginOutcome, SessionMode
from apexfx.services.identity import IdentityResolver
from apexfx.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryRedirectStorage,
    InMemoryUserStorage,
    RedirectStorageInterface,
    UserStorageInterface,
)
from apexfx.session import SessionStore


class NavigationFlow:
    """
    Orchestrates route resolution and the login round-trip.

    Flow:
    1. Navigate -> AccessGate decision; an anonymous visitor bounced from a
       protected user route has that route remembered
    2. Login -> SessionStore.login
    3. On success -> pop the remembered route (at most once)
    """

    def __init__(
        self,
        store: SessionStore,
        gate: Optional[AccessGate] = None,
        redirect_storage: Optional[RedirectStorageInterface] = None,
    ):
        self._store = store
        self._gate = gate or AccessGate(store.settings)
        self._redirects = redirect_storage or InMemoryRedirectStorage(
            store.settings.redirect_storage_key
        )

    @property
    def gate(self) -> AccessGate:
        return self._gate

    @property
    def redirects(self) -> RedirectStorageInterface:
        return self._redirects

    def navigate(self, path: str) -> AccessDecision:
        """Resolve a requested path against the current session."""
        decision = self._gate.resolve(self._store.mode, path)
        if (
            decision.action == AccessAction.REDIRECT
            and self._store.mode == SessionMode.ANONYMOUS
            and self._gate.is_user_path(decision.path)
        ):
            self._redirects.remember(decision.path)
        return decision

    async def login(self, email: str, password: str) -> LoginOutcome:
        """
        Sign in as a user and hand back where to go next.

        The remembered redirect target is consumed only on success.
        """
        success = await self._store.login(email, password)
        if not success:
            return LoginOutcome(success=False)

        target = self._redirects.pop()
        if target is not None and not self._gate.is_user_path(target):
            target = None
        return LoginOutcome(success=True, redirect_to=target)

    async def admin_login(self, email: str, password: str) -> LoginOutcome:
        success = await self._store.admin_login(email, password)
        return LoginOutcome(success=success)

    def logout(self) -> AccessDecision:
        """Tear down the session and send the visitor to the landing view."""
        self._store.logout()
        return self._gate.resolve(self._store.mode, self._gate.landing_path)


def create_session_components(
    settings: Optional[SessionSettings] = None,
    user_storage: Optional[UserStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    redirect_storage: Optional[RedirectStorageInterface] = None,
) -> tuple[SessionStore, AdminMutationGateway, NavigationFlow]:
    """
    Factory function to create all session components.

    Every storage defaults to the in-memory implementation; the ledger
    lives only as long as the process.

    Returns:
        (session_store, admin_gateway, navigation_flow)
    """
    settings = settings or get_settings()
    user_storage = user_storage if user_storage is not None else InMemoryUserStorage()
    audit_storage = audit_storage if audit_storage is not None else InMemoryAuditStorage()

    store = SessionStore(
        user_storage=user_storage,
        identity_resolver=IdentityResolver(user_storage, settings),
        audit_logger=AuditLogger(audit_storage),
        settings=settings,
    )
    gateway = AdminMutationGateway(store)
    navigation = NavigationFlow(
        store,
        gate=AccessGate(settings),
        redirect_storage=redirect_storage,
    )
    return store, gateway, navigation
