"""Tests for the identity gateway client against a request-function double."""

from __future__ import annotations

from unittest.mock import AsyncMock, call

import pytest

from conftest import USER_PAYLOAD, ok, rejected, token_payload
from tokenkeeper.auth.errors import (
    IdentityGatewayError,
    InvalidCredentials,
    TransportFailure,
)
from tokenkeeper.auth.tokens import LoginCredentials
from tokenkeeper.gateway.identity_client import IdentityGatewayClient
from tokenkeeper.gateway.transport import ApiResponse

CREDENTIALS = LoginCredentials(identifier="user@example.com", secret="password123")


class TestIssue:
    @pytest.mark.asyncio
    async def test_posts_credentials_to_login_route(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ok(token_payload(access="login-access"))]

        pair = await gateway.issue(CREDENTIALS)

        assert pair.access == "login-access"
        request_fn.assert_awaited_once_with(
            "POST /v3/auth/login",
            {"data": {"email": "user@example.com", "password": "password123"}},
        )

    @pytest.mark.asyncio
    async def test_rejection_raises_invalid_credentials(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [rejected("Invalid credentials")]

        with pytest.raises(InvalidCredentials, match="Invalid credentials") as exc_info:
            await gateway.issue(CREDENTIALS)
        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_no_response_raises_transport_failure(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ApiResponse(ok=False, data={"message": "Network error: boom"})]

        with pytest.raises(TransportFailure, match="boom"):
            await gateway.issue(CREDENTIALS)

    @pytest.mark.asyncio
    async def test_malformed_success_is_not_a_rejection(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [
            ApiResponse(
                ok=False,
                data={"message": "Malformed response from POST /v3/auth/login"},
                status=200,
                malformed=True,
            )
        ]

        with pytest.raises(TransportFailure, match="Malformed") as exc_info:
            await gateway.issue(CREDENTIALS)
        assert not isinstance(exc_info.value, InvalidCredentials)


class TestRenew:
    @pytest.mark.asyncio
    async def test_posts_refresh_token(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ok(token_payload(access="new-access", refresh="new-refresh"))]

        pair = await gateway.renew("old-refresh-token")

        request_fn.assert_awaited_once_with(
            "POST /v3/auth/refresh", {"data": {"refreshToken": "old-refresh-token"}}
        )
        assert pair.access == "new-access"
        assert pair.refresh == "new-refresh"

    @pytest.mark.asyncio
    async def test_failure_raises_with_server_message(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [rejected("Invalid refresh token")]

        with pytest.raises(IdentityGatewayError, match="Invalid refresh token"):
            await gateway.renew("invalid-token")

    @pytest.mark.asyncio
    async def test_malformed_success_payload(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ok({"accessToken": "only-this"})]

        with pytest.raises(TransportFailure, match="Malformed"):
            await gateway.renew("r")


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_sends_bearer_token(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ok(USER_PAYLOAD)]

        user = await gateway.current_user("the-access")

        request_fn.assert_awaited_once_with(
            "GET /v1/users/me", {}, {"headers": {"Authorization": "Bearer the-access"}}
        )
        assert user.user_id == "user1"
        assert user.name == "Test User"

    @pytest.mark.asyncio
    async def test_failure_raises(self, gateway: IdentityGatewayClient, request_fn: AsyncMock) -> None:
        request_fn.side_effect = [rejected("Unauthorized")]

        with pytest.raises(IdentityGatewayError, match="Unauthorized"):
            await gateway.current_user("stale")


class TestLogin:
    @pytest.mark.asyncio
    async def test_full_flow_makes_two_calls(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ok(token_payload(access="login-access")), ok(USER_PAYLOAD)]

        result = await gateway.login(CREDENTIALS)

        assert request_fn.await_count == 2
        assert result.tokens.access == "login-access"
        assert result.user.user_id == "user1"
        assert request_fn.await_args_list[1] == call(
            "GET /v1/users/me", {}, {"headers": {"Authorization": "Bearer login-access"}}
        )

    @pytest.mark.asyncio
    async def test_rejected_credentials_stop_after_one_call(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [rejected("Invalid credentials")]

        with pytest.raises(InvalidCredentials, match="Invalid credentials"):
            await gateway.login(CREDENTIALS)
        assert request_fn.await_count == 1

    @pytest.mark.asyncio
    async def test_login_email_fallback(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ok(token_payload()), ok({"userId": "u", "displayName": "U"})]

        result = await gateway.login(CREDENTIALS, email_fallback="login")

        assert result.user.email == "user@example.com"

    @pytest.mark.asyncio
    async def test_default_email_fallback_is_empty(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        request_fn.side_effect = [ok(token_payload()), ok({"userId": "u", "displayName": "U"})]

        result = await gateway.login(CREDENTIALS)

        assert result.user.email == ""


class TestCustomRoutes:
    @pytest.mark.asyncio
    async def test_routes_are_configurable(self, request_fn: AsyncMock) -> None:
        gateway = IdentityGatewayClient(request_fn, refresh_route="POST /auth/v9/renew")
        request_fn.side_effect = [ok(token_payload())]

        await gateway.renew("r")

        assert request_fn.await_args.args[0] == "POST /auth/v9/renew"
