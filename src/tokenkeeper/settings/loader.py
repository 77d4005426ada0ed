"""Settings loaded from ``config/settings.yaml``.

Pattern: Declarative Session Policy
------------------------------------
Several session behaviours have more than one reasonable answer: whether an
expired-but-renewable pair is renewed at startup, what email a profile
without one gets, whether a renewal delay is capped, what happens to the
session when the refresh credential lapses.  Each is a named setting with an
explicit default rather than a choice buried in the session manager.

The file is read once, validated, and turned into frozen dataclasses.  A
missing file or a value of the wrong type raises ``SettingsError`` up front
instead of surfacing later as a confusing runtime failure.
"""

from __future__ import annotations

import dataclasses
import pathlib
from typing import Any

import yaml

from tokenkeeper.auth.validation import DEFAULT_REFRESH_CEILING
from tokenkeeper.gateway.identity_client import (
    EMAIL_FALLBACK_EMPTY,
    EMAIL_FALLBACK_LOGIN,
    LOGIN_ROUTE,
    PROFILE_ROUTE,
    REFRESH_ROUTE,
)

DEFAULT_SETTINGS_PATH = pathlib.Path(__file__).resolve().parents[3] / "config" / "settings.yaml"


class SettingsError(Exception):
    """Raised when the settings file is missing or malformed."""


@dataclasses.dataclass(frozen=True)
class SessionConfig:
    """Session policy knobs.

    Attributes:
        max_refresh_delay:       Cap on a single renewal delay in seconds;
                                 ``None`` disables the cap.
        refresh_leeway:          Seconds to renew ahead of access expiry.
        hydration_renews:        Renew an access-expired, refresh-valid pair
                                 during hydration instead of starting anonymous.
        email_fallback:          ``"empty"`` or ``"login"``; what a profile
                                 without an email gets.
        clear_on_refresh_expiry: Clear the session when renewal finds the
                                 refresh credential expired.
        suppress_stale_results:  Drop background results (hydration, scheduled
                                 renewal) superseded while in flight.
    """

    max_refresh_delay: float | None = DEFAULT_REFRESH_CEILING
    refresh_leeway: float = 0.0
    hydration_renews: bool = False
    email_fallback: str = EMAIL_FALLBACK_EMPTY
    clear_on_refresh_expiry: bool = True
    suppress_stale_results: bool = True

    def __post_init__(self) -> None:
        if self.email_fallback not in (EMAIL_FALLBACK_EMPTY, EMAIL_FALLBACK_LOGIN):
            raise SettingsError(
                f"email_fallback must be '{EMAIL_FALLBACK_EMPTY}' or "
                f"'{EMAIL_FALLBACK_LOGIN}', got: {self.email_fallback!r}"
            )
        if self.max_refresh_delay is not None and self.max_refresh_delay <= 0:
            raise SettingsError("max_refresh_delay must be positive or null")
        if self.refresh_leeway < 0:
            raise SettingsError("refresh_leeway must not be negative")


@dataclasses.dataclass(frozen=True)
class IdentitySettings:
    base_url: str
    timeout: float = 10.0
    login_route: str = LOGIN_ROUTE
    refresh_route: str = REFRESH_ROUTE
    profile_route: str = PROFILE_ROUTE


@dataclasses.dataclass(frozen=True)
class Settings:
    identity: IdentitySettings
    session: SessionConfig


def load_settings(path: str | pathlib.Path | None = None) -> Settings:
    """Read and validate the settings file at *path*."""
    settings_path = pathlib.Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    if not settings_path.exists():
        raise SettingsError(f"Settings file not found: {settings_path}")
    with open(settings_path) as fh:
        data = yaml.safe_load(fh)
    return settings_from_mapping(data)


def settings_from_mapping(data: Any) -> Settings:
    if not isinstance(data, dict) or "identity" not in data:
        raise SettingsError("Settings file must contain a top-level 'identity' key")

    identity_block = _block(data, "identity")
    routes = _block(identity_block, "routes")
    base_url = identity_block.get("base_url")
    if not isinstance(base_url, str) or not base_url:
        raise SettingsError("identity.base_url must be a non-empty string")

    identity = IdentitySettings(
        base_url=base_url,
        timeout=_number(identity_block, "timeout", 10.0),
        login_route=_string(routes, "login", LOGIN_ROUTE),
        refresh_route=_string(routes, "refresh", REFRESH_ROUTE),
        profile_route=_string(routes, "profile", PROFILE_ROUTE),
    )

    session_block = _block(data, "session")
    session = SessionConfig(
        max_refresh_delay=_number(
            session_block, "max_refresh_delay", DEFAULT_REFRESH_CEILING, nullable=True
        ),
        refresh_leeway=_number(session_block, "refresh_leeway", 0.0),
        hydration_renews=_flag(session_block, "hydration_renews", False),
        email_fallback=_string(session_block, "email_fallback", EMAIL_FALLBACK_EMPTY),
        clear_on_refresh_expiry=_flag(session_block, "clear_on_refresh_expiry", True),
        suppress_stale_results=_flag(session_block, "suppress_stale_results", True),
    )
    return Settings(identity=identity, session=session)


# -- private helpers ---------------------------------------------------------

def _block(data: dict[str, Any], key: str) -> dict[str, Any]:
    block = data.get(key) or {}
    if not isinstance(block, dict):
        raise SettingsError(f"'{key}' must be a mapping")
    return block


def _number(block: dict[str, Any], key: str, default: float | None, nullable: bool = False) -> Any:
    if key not in block:
        return default
    value = block[key]
    if value is None and nullable:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"'{key}' must be a number, got: {value!r}")
    return float(value)


def _flag(block: dict[str, Any], key: str, default: bool) -> bool:
    value = block.get(key, default)
    if not isinstance(value, bool):
        raise SettingsError(f"'{key}' must be true or false, got: {value!r}")
    return value


def _string(block: dict[str, Any], key: str, default: str) -> str:
    value = block.get(key, default)
    if not isinstance(value, str):
        raise SettingsError(f"'{key}' must be a string, got: {value!r}")
    return value
