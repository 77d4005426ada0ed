"""One-time reconciliation of caller-supplied credentials into a session.

The caller may hand the session manager nothing, a ``CredentialPair`` it
already holds, or an awaitable that will produce one (for example a read
from the host application's own credential store).  ``HydrationStep``
resolves that source once and decides whether the session starts
authenticated or anonymous.

Policy: a pair whose access credential has expired is not renewed during
hydration unless ``renew_expired`` is set; by default only an active,
authenticated session schedules its own renewal.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
from collections.abc import Awaitable, Callable

from tokenkeeper.auth.errors import IdentityGatewayError
from tokenkeeper.auth.tokens import CredentialPair
from tokenkeeper.auth.validation import is_access_valid, is_refresh_valid
from tokenkeeper.gateway.identity_client import IdentityGatewayClient
from tokenkeeper.session.state import SessionState

logger = logging.getLogger(__name__)

InitialCredentialSource = CredentialPair | Awaitable[CredentialPair | None] | None


@dataclasses.dataclass(frozen=True)
class HydrationOutcome:
    """Resulting state plus the error that forced it anonymous, if any."""

    state: SessionState
    error: Exception | None = None


class HydrationStep:
    def __init__(
        self,
        gateway: IdentityGatewayClient,
        source: InitialCredentialSource,
        renew_expired: bool = False,
    ) -> None:
        self._gateway = gateway
        self._source = source
        self._renew_expired = renew_expired
        self._consumed = False

    async def run(
        self,
        on_pending: Callable[[CredentialPair], None] | None = None,
    ) -> HydrationOutcome:
        """Resolve the source and return the state the session starts in.

        *on_pending* is called with the pair right before its user is looked
        up.  Raises ``RuntimeError`` if called a second time.
        """
        if self._consumed:
            raise RuntimeError("Hydration has already run")
        self._consumed = True

        try:
            tokens = await self._resolve_source()
        except Exception as exc:
            logger.warning("Initial credential source failed: %r", exc)
            return HydrationOutcome(SessionState.anonymous(), error=exc)

        if tokens is None:
            logger.info("Hydration: no initial credentials")
            return HydrationOutcome(SessionState.anonymous())

        try:
            if not is_access_valid(tokens):
                if not (self._renew_expired and is_refresh_valid(tokens)):
                    logger.info("Hydration: initial credentials expired")
                    return HydrationOutcome(SessionState.anonymous())
                logger.info("Hydration: renewing expired initial credentials")
                tokens = await self._gateway.renew(tokens.refresh)

            if on_pending is not None:
                on_pending(tokens)
            user = await self._gateway.current_user(tokens.access)
        except IdentityGatewayError as exc:
            logger.warning("Hydration: could not restore session: %s", exc)
            return HydrationOutcome(SessionState.anonymous(), error=exc)

        logger.info("Hydration: restored session for user=%s", user.user_id)
        return HydrationOutcome(SessionState.authenticated(tokens, user))

    # -- private helpers -----------------------------------------------------

    async def _resolve_source(self) -> CredentialPair | None:
        source = self._source
        self._source = None
        if inspect.isawaitable(source):
            return await source
        return source
