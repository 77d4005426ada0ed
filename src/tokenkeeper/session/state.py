"""Session state snapshots.

A ``SessionState`` is replaced wholesale on every transition, so a reader
holding a reference never sees the pair and the user from two different
transitions.
"""

from __future__ import annotations

import dataclasses
import enum

from tokenkeeper.auth.tokens import CredentialPair, UserProfile


class SessionStatus(enum.Enum):
    UNDETERMINED = "undetermined"
    # A pair has been obtained and its user is being resolved.
    PENDING = "pending"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class Undetermined(enum.Enum):
    """Sentinel returned by accessors before the first determination."""

    UNDETERMINED = "undetermined"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDETERMINED"


UNDETERMINED = Undetermined.UNDETERMINED


@dataclasses.dataclass(frozen=True)
class SessionState:
    """One point in the session lifecycle.

    Attributes:
        status:  Lifecycle status.
        tokens:  Current pair; set for ``AUTHENTICATED`` and ``PENDING``.
        user:    Current user; set only for ``AUTHENTICATED``.
    """

    status: SessionStatus
    tokens: CredentialPair | None = None
    user: UserProfile | None = None

    def __post_init__(self) -> None:
        if self.status is SessionStatus.AUTHENTICATED and (self.tokens is None or self.user is None):
            raise ValueError("An authenticated state needs both tokens and a user")
        if self.status is SessionStatus.PENDING and (self.tokens is None or self.user is not None):
            raise ValueError("A pending state carries tokens and no user")
        if self.status in (SessionStatus.UNDETERMINED, SessionStatus.ANONYMOUS) and (
            self.tokens is not None or self.user is not None
        ):
            raise ValueError(f"A {self.status.value} state carries neither tokens nor a user")

    @classmethod
    def undetermined(cls) -> SessionState:
        return cls(SessionStatus.UNDETERMINED)

    @classmethod
    def anonymous(cls) -> SessionState:
        return cls(SessionStatus.ANONYMOUS)

    @classmethod
    def pending(cls, tokens: CredentialPair) -> SessionState:
        return cls(SessionStatus.PENDING, tokens=tokens)

    @classmethod
    def authenticated(cls, tokens: CredentialPair, user: UserProfile) -> SessionState:
        return cls(SessionStatus.AUTHENTICATED, tokens=tokens, user=user)

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    @property
    def is_determined(self) -> bool:
        return self.status in (SessionStatus.AUTHENTICATED, SessionStatus.ANONYMOUS)

    def __str__(self) -> str:
        user = self.user.user_id if self.user else None
        return f"SessionState(status={self.status.value}, user={user})"
