"""Pure validity checks over a ``CredentialPair``.

Every function takes an optional *now* so callers (and tests) can evaluate
the pair against a fixed instant; it defaults to the current UTC time.
"""

from __future__ import annotations

import datetime

from tokenkeeper.auth.errors import NoCredentialsAvailable
from tokenkeeper.auth.tokens import CredentialPair

# Upper bound on a single renewal delay, so that a pair with an implausibly
# distant expiry still gets re-checked at least once a day.
DEFAULT_REFRESH_CEILING = 24 * 60 * 60.0


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def is_access_valid(pair: CredentialPair | None, now: datetime.datetime | None = None) -> bool:
    if pair is None:
        return False
    return pair.access_expires_at > (now or utcnow())


def is_refresh_valid(pair: CredentialPair | None, now: datetime.datetime | None = None) -> bool:
    """Refresh validity is independent of access validity."""
    if pair is None:
        return False
    return pair.refresh_expires_at > (now or utcnow())


def refresh_timeout(
    pair: CredentialPair | None,
    now: datetime.datetime | None = None,
    ceiling: float | None = DEFAULT_REFRESH_CEILING,
    leeway: float = 0.0,
) -> float:
    """Return the seconds to wait before renewing *pair*.

    The result is ``access_expires_at - now - leeway``, capped at *ceiling*
    (``None`` disables the cap).  It is non-positive for an already-expired
    access credential.

    Raises ``NoCredentialsAvailable`` when *pair* is ``None``.
    """
    if pair is None:
        raise NoCredentialsAvailable()

    delay = (pair.access_expires_at - (now or utcnow())).total_seconds() - leeway
    if ceiling is not None and delay > ceiling:
        return ceiling
    return delay
