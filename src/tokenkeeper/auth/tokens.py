"""Credential and user snapshots held by a session.

Pattern: Immutable Credential Snapshot
---------------------------------------
A ``CredentialPair`` is created once, from the identity endpoint's token
payload, and never mutated.  Renewal produces a *new* pair; logout replaces
the pair with ``None``.  Because the dataclass is frozen, two pairs compare
equal exactly when every field matches, which is what the change notifier
relies on to suppress duplicate notifications.

The ``map_*_from_api`` helpers are the normalization boundary between the
wire shape returned by the identity endpoint and these snapshots.  They are
pure mappings; a payload missing a required key is reported as a malformed
response rather than leaking a ``KeyError`` into the session layer.
"""

from __future__ import annotations

import dataclasses
import datetime
from typing import Any

from tokenkeeper.auth.errors import TransportFailure


@dataclasses.dataclass(frozen=True)
class CredentialPair:
    """Access/refresh token pair with absolute expiry instants.

    Attributes:
        access:             Short-lived bearer token for API calls.
        access_expires_at:  UTC instant after which ``access`` is unusable.
        refresh:            Longer-lived token used only to obtain a new pair.
        refresh_expires_at: UTC instant after which ``refresh`` is unusable.
    """

    access: str
    access_expires_at: datetime.datetime
    refresh: str
    refresh_expires_at: datetime.datetime

    def __repr__(self) -> str:
        return (
            f"CredentialPair(access_expires_at={self.access_expires_at.isoformat()}, "
            f"refresh_expires_at={self.refresh_expires_at.isoformat()})"
        )


@dataclasses.dataclass(frozen=True)
class UserProfile:
    """The authenticated user as reported by the profile route."""

    user_id: str
    name: str
    email: str

    def __str__(self) -> str:
        return f"UserProfile(user={self.user_id}, name={self.name})"


@dataclasses.dataclass(frozen=True)
class LoginCredentials:
    """Identifier/secret pair submitted to the login route."""

    identifier: str
    secret: str = dataclasses.field(repr=False)

    def to_wire(self) -> dict[str, str]:
        return {"email": self.identifier, "password": self.secret}


def parse_instant(raw: str) -> datetime.datetime:
    """Parse an ISO-8601 timestamp into an aware UTC ``datetime``.

    Naive timestamps are read as UTC.
    """
    value = datetime.datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)


def map_tokens_from_api(payload: dict[str, Any]) -> CredentialPair:
    """Normalize a raw token payload into a ``CredentialPair``."""
    try:
        return CredentialPair(
            access=payload["accessToken"],
            access_expires_at=parse_instant(payload["accessTokenExpiresAt"]),
            refresh=payload["refreshToken"],
            refresh_expires_at=parse_instant(payload["refreshTokenExpiresAt"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise TransportFailure(f"Malformed token response: {exc!r}") from exc


def map_user_from_api(payload: dict[str, Any], email_fallback: str = "") -> UserProfile:
    """Normalize a raw user payload into a ``UserProfile``.

    A missing or null ``email`` is replaced by *email_fallback*.
    """
    try:
        return UserProfile(
            user_id=str(payload["userId"]),
            name=payload["displayName"],
            email=payload.get("email") or email_fallback,
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise TransportFailure(f"Malformed user response: {exc!r}") from exc
