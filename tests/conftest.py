"""Shared fixtures for tests."""

from __future__ import annotations

import datetime
from unittest.mock import AsyncMock

import pytest

from tokenkeeper.auth.tokens import CredentialPair, UserProfile
from tokenkeeper.gateway.identity_client import IdentityGatewayClient
from tokenkeeper.gateway.transport import ApiResponse


def make_pair(
    *,
    access_in: float = 3600,
    refresh_in: float = 7 * 24 * 3600,
    access: str = "access-token",
    refresh: str = "refresh-token",
) -> CredentialPair:
    """Create a CredentialPair expiring *access_in* / *refresh_in* seconds from now."""
    now = datetime.datetime.now(datetime.UTC)
    return CredentialPair(
        access=access,
        access_expires_at=now + datetime.timedelta(seconds=access_in),
        refresh=refresh,
        refresh_expires_at=now + datetime.timedelta(seconds=refresh_in),
    )


def token_payload(
    *,
    access_in: float = 3600,
    refresh_in: float = 7 * 24 * 3600,
    access: str = "access-token",
    refresh: str = "refresh-token",
) -> dict[str, str]:
    """Wire-shaped token payload as returned by the login and refresh routes."""
    now = datetime.datetime.now(datetime.UTC)
    return {
        "accessToken": access,
        "accessTokenExpiresAt": (now + datetime.timedelta(seconds=access_in)).isoformat(),
        "refreshToken": refresh,
        "refreshTokenExpiresAt": (now + datetime.timedelta(seconds=refresh_in)).isoformat(),
    }


USER_PAYLOAD = {"userId": "user1", "displayName": "Test User", "email": "user@example.com"}


def ok(data: object) -> ApiResponse:
    return ApiResponse(ok=True, data=data, status=200)


def rejected(message: str, status: int = 401) -> ApiResponse:
    return ApiResponse(ok=False, data={"message": message}, status=status)


@pytest.fixture
def request_fn() -> AsyncMock:
    """Request function double; queue responses via ``side_effect``."""
    return AsyncMock()


@pytest.fixture
def gateway(request_fn: AsyncMock) -> IdentityGatewayClient:
    return IdentityGatewayClient(request_fn)


@pytest.fixture
def valid_pair() -> CredentialPair:
    return make_pair()


@pytest.fixture
def expired_pair() -> CredentialPair:
    return make_pair(access_in=-3600, refresh_in=-3600, access="expired-access", refresh="expired-refresh")


@pytest.fixture
def user() -> UserProfile:
    return UserProfile(user_id="user1", name="Test User", email="user@example.com")
