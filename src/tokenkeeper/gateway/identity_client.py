"""Remote operations against the identity endpoint.

Pattern: Identity Gateway
--------------------------
The session manager needs exactly three things from the identity endpoint:
a credential pair for a login, a fresh pair for a refresh token, and the
profile behind an access token.  ``IdentityGatewayClient`` performs each as
a single round trip through the injected request function and turns every
failure into an ``IdentityGatewayError`` that carries the server message.

There are no retries here.  Whether a failed renewal is retried, reported
or ignored is decided by the session manager.
"""

from __future__ import annotations

import dataclasses
import logging

from tokenkeeper.auth.errors import (
    IdentityGatewayError,
    InvalidCredentials,
    TransportFailure,
)
from tokenkeeper.auth.tokens import (
    CredentialPair,
    LoginCredentials,
    UserProfile,
    map_tokens_from_api,
    map_user_from_api,
)
from tokenkeeper.gateway.transport import ApiResponse, RequestFunction

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "POST /v3/auth/login"
REFRESH_ROUTE = "POST /v3/auth/refresh"
PROFILE_ROUTE = "GET /v1/users/me"

# Accepted values for the ``email_fallback`` policy.
EMAIL_FALLBACK_EMPTY = "empty"
EMAIL_FALLBACK_LOGIN = "login"


@dataclasses.dataclass(frozen=True)
class LoginResult:
    tokens: CredentialPair
    user: UserProfile


class IdentityGatewayClient:
    """Issues, renews and resolves credentials through a request function."""

    def __init__(
        self,
        request: RequestFunction,
        login_route: str = LOGIN_ROUTE,
        refresh_route: str = REFRESH_ROUTE,
        profile_route: str = PROFILE_ROUTE,
    ) -> None:
        self._request = request
        self._login_route = login_route
        self._refresh_route = refresh_route
        self._profile_route = profile_route

    async def issue(self, credentials: LoginCredentials) -> CredentialPair:
        """Exchange *credentials* for a ``CredentialPair``.

        Raises ``InvalidCredentials`` when the endpoint rejects them.
        """
        response = await self._request(self._login_route, {"data": credentials.to_wire()})
        self._raise_for_failure(response, self._login_route, InvalidCredentials)
        return map_tokens_from_api(response.data)

    async def renew(self, refresh_token: str) -> CredentialPair:
        response = await self._request(
            self._refresh_route, {"data": {"refreshToken": refresh_token}}
        )
        self._raise_for_failure(response, self._refresh_route, IdentityGatewayError)
        return map_tokens_from_api(response.data)

    async def current_user(self, access_token: str, email_fallback: str = "") -> UserProfile:
        response = await self._request(
            self._profile_route,
            {},
            {"headers": {"Authorization": f"Bearer {access_token}"}},
        )
        self._raise_for_failure(response, self._profile_route, IdentityGatewayError)
        return map_user_from_api(response.data, email_fallback=email_fallback)

    async def login(
        self,
        credentials: LoginCredentials,
        email_fallback: str = EMAIL_FALLBACK_EMPTY,
    ) -> LoginResult:
        """Issue a pair for *credentials*, then resolve the user behind it.

        With ``email_fallback="login"`` a profile without an email takes the
        login identifier instead of the empty string.
        """
        tokens = await self.issue(credentials)
        fallback = credentials.identifier if email_fallback == EMAIL_FALLBACK_LOGIN else ""
        user = await self.current_user(tokens.access, email_fallback=fallback)
        logger.debug("Identity endpoint issued credentials for user=%s", user.user_id)
        return LoginResult(tokens=tokens, user=user)

    # -- private helpers -----------------------------------------------------

    @staticmethod
    def _raise_for_failure(
        response: ApiResponse,
        route: str,
        error_cls: type[IdentityGatewayError],
    ) -> None:
        if response.ok:
            logger.debug("%s succeeded (status=%s)", route, response.status)
            return
        logger.debug("%s failed (status=%s): %s", route, response.status, response.message)
        if response.status is None or response.malformed:
            raise TransportFailure(response.message)
        raise error_cls(response.message, status=response.status)
