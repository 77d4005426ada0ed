"""Tests for the terminal driver's command handling."""

from __future__ import annotations

import pathlib
from unittest.mock import AsyncMock, patch

import pytest

from conftest import USER_PAYLOAD, ok, token_payload
from tokenkeeper import main as main_module
from tokenkeeper.gateway.identity_client import IdentityGatewayClient
from tokenkeeper.prompt import cli
from tokenkeeper.session.manager import SessionManager
from tokenkeeper.session.state import SessionStatus


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_login_then_status_then_logout(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        manager = SessionManager(gateway)
        await manager.hydrate()
        request_fn.side_effect = [ok(token_payload()), ok(USER_PAYLOAD)]

        with patch.object(cli, "input", create=True, return_value="user@example.com"), patch.object(
            cli.getpass, "getpass", return_value="password123"
        ):
            with cli.console.capture() as captured:
                await cli._run_command(manager, "login")
                await cli._run_command(manager, "status")
        output = captured.get()

        assert "Authenticated" in output
        assert "authenticated" in output
        assert "user1" in output

        await cli._run_command(manager, "logout")
        assert manager.status is SessionStatus.ANONYMOUS

    @pytest.mark.asyncio
    async def test_empty_identifier_does_not_login(
        self, gateway: IdentityGatewayClient, request_fn: AsyncMock
    ) -> None:
        manager = SessionManager(gateway)
        await manager.hydrate()

        with patch.object(cli, "input", create=True, return_value="  "), patch.object(
            cli.getpass, "getpass", return_value="secret"
        ):
            with cli.console.capture() as captured:
                await cli._run_command(manager, "login")

        assert "required" in captured.get()
        request_fn.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_command_shows_help(self, gateway: IdentityGatewayClient) -> None:
        manager = SessionManager(gateway)

        with cli.console.capture() as captured:
            await cli._run_command(manager, "help")

        assert "refresh" in captured.get()


class TestMain:
    def test_invalid_settings_exit(self, tmp_path: pathlib.Path) -> None:
        missing = tmp_path / "missing.yaml"
        with patch("sys.argv", ["tokenkeeper", "--config", str(missing)]):
            with pytest.raises(SystemExit) as exc_info:
                main_module.main()
        assert exc_info.value.code == 2

    def test_base_url_override(self) -> None:
        with patch("sys.argv", ["tokenkeeper", "--base-url", "https://other.example.com"]), patch(
            "tokenkeeper.prompt.cli.run_cli"
        ) as run_cli:
            main_module.main()

        settings = run_cli.call_args.args[0]
        assert settings.identity.base_url == "https://other.example.com"
