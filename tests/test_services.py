"""Tests for services/manager.py -- systemd service control."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from devsetup.errors import ServiceError
from devsetup.models import CommandResult
from devsetup.services.manager import ServiceManager


def _executor() -> MagicMock:
    executor = MagicMock()
    executor.run = AsyncMock(
        side_effect=lambda command, credential, **_: CommandResult(command=command, success=True)
    )
    return executor


class TestStatus:
    @patch("devsetup.services.manager.run_command", new_callable=AsyncMock)
    async def test_active(self, mock_run):
        mock_run.return_value = (0, "active\n", "")

        assert await ServiceManager(_executor()).status("nginx") == "active"
        assert mock_run.call_args.args[0] == ["systemctl", "is-active", "nginx"]

    @patch("devsetup.services.manager.run_command", new_callable=AsyncMock)
    async def test_non_zero_exit_is_inactive(self, mock_run):
        mock_run.return_value = (3, "failed\n", "")

        assert await ServiceManager(_executor()).status("nginx") == "inactive"

    @patch("devsetup.services.manager.run_command", new_callable=AsyncMock)
    async def test_missing_systemctl_is_inactive(self, mock_run):
        mock_run.side_effect = FileNotFoundError("systemctl")

        assert await ServiceManager(_executor()).status("nginx") == "inactive"

    async def test_invalid_name(self):
        with pytest.raises(ServiceError):
            await ServiceManager(_executor()).status("nginx; reboot")


class TestControl:
    @pytest.mark.parametrize("action", ["start", "stop", "restart"])
    async def test_runs_systemctl_action(self, action):
        executor = _executor()

        result = await getattr(ServiceManager(executor), action)("docker", "pw")

        assert result.success is True
        executor.run.assert_awaited_once_with(["systemctl", action, "docker"], "pw")

    async def test_unknown_action(self):
        executor = _executor()

        with pytest.raises(ServiceError, match="Unknown action"):
            await ServiceManager(executor).control("docker", "enable", "pw")

        executor.run.assert_not_awaited()

    @pytest.mark.parametrize("name", ["", "-H", "a b", "x/y"])
    async def test_invalid_names_rejected(self, name):
        executor = _executor()

        with pytest.raises(ServiceError, match="Invalid service name"):
            await ServiceManager(executor).control(name, "start", "pw")

        executor.run.assert_not_awaited()
