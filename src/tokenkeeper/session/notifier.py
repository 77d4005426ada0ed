"""Observer dispatch for credential transitions."""

from __future__ import annotations

import logging
from collections.abc import Callable

from tokenkeeper.auth.tokens import CredentialPair
from tokenkeeper.session.state import UNDETERMINED, Undetermined

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[CredentialPair | None], None]
ErrorCallback = Callable[[Exception], None]


class ChangeNotifier:
    """Calls *on_change* once per change of the credential slot.

    The first call happens when the session is first determined, even if the
    result is "no credentials".  Publishing the value that was published last
    is a no-op.  *on_error* is the channel for failures of background work
    (scheduled renewals, hydration) that have no caller to raise into.
    """

    def __init__(
        self,
        on_change: ChangeCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._on_change = on_change
        self._on_error = on_error
        self._last: CredentialPair | None | Undetermined = UNDETERMINED

    @property
    def has_error_channel(self) -> bool:
        return self._on_error is not None

    def publish(self, tokens: CredentialPair | None) -> bool:
        """Announce *tokens*; returns ``True`` if the observer was called."""
        if self._last is not UNDETERMINED and self._last == tokens:
            return False
        self._last = tokens
        if self._on_change is not None:
            self._on_change(tokens)
        return True

    def report(self, exc: Exception) -> bool:
        """Send *exc* to the error channel; returns ``False`` when there is none."""
        if self._on_error is None:
            return False
        self._on_error(exc)
        return True
