"""Session manager: the single owner of a client's session state.

Pattern: Explicitly Owned Session
----------------------------------
One ``SessionManager`` is created at the application root and handed to
every consumer that needs to know who is logged in.  It owns the current
``SessionState``, the pending renewal timer and the observer callbacks, so
there is no ambient global session and disposing the manager cancels all of
its deferred work.

All state changes go through ``_commit``, which swaps the state snapshot,
re-arms or cancels the renewal timer and notifies the observer.  Everything
runs on one event loop; the only suspension points are the gateway calls and
the wait on the initial credential source.  User-initiated operations
(``login``, ``logout``, ``refresh``) follow last-write-wins.  Background work
(hydration, scheduled renewal) records the commit generation it started
under and, with ``suppress_stale_results``, drops its result if another
commit landed in the meantime.
"""

from __future__ import annotations

import asyncio
import logging

from tokenkeeper.auth.errors import (
    IdentityGatewayError,
    NoActiveSession,
    NoCredentialsAvailable,
    RefreshExpired,
)
from tokenkeeper.auth.tokens import CredentialPair, LoginCredentials, UserProfile
from tokenkeeper.auth.validation import is_refresh_valid, refresh_timeout
from tokenkeeper.gateway.identity_client import IdentityGatewayClient
from tokenkeeper.session.hydration import HydrationStep, InitialCredentialSource
from tokenkeeper.session.notifier import ChangeCallback, ChangeNotifier, ErrorCallback
from tokenkeeper.session.scheduler import RenewalScheduler
from tokenkeeper.session.state import (
    UNDETERMINED,
    SessionState,
    SessionStatus,
    Undetermined,
)
from tokenkeeper.settings.loader import SessionConfig

logger = logging.getLogger(__name__)


class SessionManager:
    """Holds, renews and publishes the credentials of one user session."""

    def __init__(
        self,
        gateway: IdentityGatewayClient,
        initial_tokens: InitialCredentialSource = None,
        on_change: ChangeCallback | None = None,
        on_error: ErrorCallback | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        self._gateway = gateway
        self._config = config or SessionConfig()
        self._notifier = ChangeNotifier(on_change=on_change, on_error=on_error)
        self._scheduler = RenewalScheduler(self._on_renewal_due)
        self._hydration = HydrationStep(
            gateway, initial_tokens, renew_expired=self._config.hydration_renews
        )
        self._state = SessionState.undetermined()
        self._generation = 0
        self._determined = asyncio.Event()
        self._closed = False

    # -- read access ---------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def tokens(self) -> CredentialPair | None | Undetermined:
        """Current pair, ``None`` when anonymous, ``UNDETERMINED`` before startup resolves."""
        if not self._state.is_determined:
            return UNDETERMINED
        return self._state.tokens

    @property
    def current_user(self) -> UserProfile | None | Undetermined:
        if not self._state.is_determined:
            return UNDETERMINED
        return self._state.user

    @property
    def renewal_delay(self) -> float | None:
        """Delay the pending renewal was armed with, ``None`` when none is pending."""
        return self._scheduler.pending_delay

    async def wait_determined(self) -> SessionState:
        await self._determined.wait()
        return self._state

    # -- lifecycle -----------------------------------------------------------

    async def hydrate(self) -> SessionState:
        """Resolve the initial credential source into the first session state.

        Runs once; a second call raises ``RuntimeError``.
        """
        generation = self._generation
        outcome = await self._hydration.run(on_pending=self._enter_pending)

        if self._config.suppress_stale_results and generation != self._generation:
            logger.info("Hydration result dropped: session changed while it was running")
            return self._state

        self._commit(outcome.state)
        if outcome.error is not None:
            self._notifier.report(outcome.error)
        return self._state

    async def aclose(self) -> None:
        """Cancel pending and in-flight renewal; the manager arms no further timers."""
        self._closed = True
        self._generation += 1
        self._scheduler.close()

    async def __aenter__(self) -> SessionManager:
        await self.hydrate()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- operations ----------------------------------------------------------

    async def login(self, credentials: LoginCredentials) -> UserProfile:
        """Authenticate *credentials*, replacing whatever session existed.

        Gateway errors propagate and leave the state unchanged.
        """
        result = await self._gateway.login(credentials, email_fallback=self._config.email_fallback)
        self._commit(SessionState.authenticated(result.tokens, result.user))
        logger.info("User %s logged in", result.user.user_id)
        return result.user

    async def logout(self) -> None:
        if not self._state.is_authenticated:
            raise NoActiveSession()
        user = self._state.user
        self._commit(SessionState.anonymous())
        logger.info("User %s logged out", user.user_id if user else None)

    async def refresh(self) -> CredentialPair:
        """Renew the current pair now.

        Raises ``NoCredentialsAvailable`` without a session and
        ``RefreshExpired`` when the refresh credential has lapsed.
        """
        if not self._state.is_authenticated:
            raise NoCredentialsAvailable()
        tokens, user = self._state.tokens, self._state.user

        if not is_refresh_valid(tokens):
            exc = RefreshExpired()
            self._lapse(exc)
            raise exc

        new_tokens = await self._gateway.renew(tokens.refresh)
        self._commit(SessionState.authenticated(new_tokens, user), renewed=True)
        logger.info("Credentials renewed for user=%s", user.user_id)
        return new_tokens

    # -- private helpers -----------------------------------------------------

    def _commit(self, state: SessionState, renewed: bool = False) -> None:
        """Swap in *state*, re-arm or cancel the timer, then notify.

        A *renewed* pair that is already due is not re-armed, so a gateway
        handing back expired credentials cannot drive a renewal loop.
        """
        previous = self._state
        self._generation += 1
        self._state = state

        if state.is_authenticated and not self._closed:
            delay = refresh_timeout(
                state.tokens,
                ceiling=self._config.max_refresh_delay,
                leeway=self._config.refresh_leeway,
            )
            if renewed and delay <= 0:
                logger.warning("Renewed credentials are already due; renewal not re-armed")
                self._scheduler.cancel()
            else:
                self._scheduler.arm(delay)
        else:
            self._scheduler.cancel()

        if previous.status is not state.status:
            logger.info("Session %s -> %s", previous.status.value, state.status.value)
        self._determined.set()
        self._notifier.publish(state.tokens)

    def _enter_pending(self, tokens: CredentialPair) -> None:
        if self._state.status is SessionStatus.UNDETERMINED:
            self._state = SessionState.pending(tokens)

    def _lapse(self, exc: RefreshExpired) -> None:
        logger.info("Refresh credential expired: %s", exc)
        if self._config.clear_on_refresh_expiry:
            self._commit(SessionState.anonymous())

    async def _on_renewal_due(self) -> None:
        if not self._state.is_authenticated:
            return
        generation = self._generation
        tokens, user = self._state.tokens, self._state.user

        try:
            if not is_refresh_valid(tokens):
                exc = RefreshExpired()
                self._lapse(exc)
                raise exc
            new_tokens = await self._gateway.renew(tokens.refresh)
        except (IdentityGatewayError, RefreshExpired) as exc:
            if not self._notifier.report(exc):
                logger.warning("Scheduled renewal failed: %s", exc)
            return

        if self._closed:
            logger.info("Scheduled renewal result dropped: session closed")
            return
        if self._config.suppress_stale_results and generation != self._generation:
            logger.info("Scheduled renewal result dropped: session changed while it was running")
            return

        self._commit(SessionState.authenticated(new_tokens, user), renewed=True)
        logger.info("Scheduled renewal succeeded for user=%s", user.user_id)
