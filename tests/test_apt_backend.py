"""Tests for packages/apt.py -- apt/dpkg package backend."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

from devsetup.models import CommandResult
from devsetup.packages.apt import AptBackend

_RUN = "devsetup.packages.apt.run_command"

_INSTALLED = (0, "install ok installed", "")
_NOT_INSTALLED = (1, "", "dpkg-query: no packages found matching x")

# --- Helpers ---------------------------------------------------------------


def _ok(command: list[str]) -> CommandResult:
    return CommandResult(command=command, success=True, stdout="done")


def _make_executor(*, fail_on: str = "") -> MagicMock:
    async def run(command, credential, *, timeout=None):
        if fail_on and fail_on in command:
            return CommandResult(
                command=command, success=False, exit_code=100, stderr="E: oops", error="Command exited with code 100"
            )
        return _ok(command)

    executor = MagicMock()
    executor.run = AsyncMock(side_effect=run)
    return executor


def _commands(executor: MagicMock) -> list[list[str]]:
    return [c.args[0] for c in executor.run.call_args_list]


# --- Package names ---------------------------------------------------------


class TestResolvePackageName:
    def test_no_overrides(self):
        assert AptBackend(_make_executor()).resolve_package_name("git curl") == "git curl"

    def test_overrides_applied_per_name(self):
        backend = AptBackend(_make_executor(), overrides={"docker.io": "docker-ce"})

        assert backend.resolve_package_name("docker.io containerd") == "docker-ce containerd"


# --- is_installed ----------------------------------------------------------


class TestIsInstalled:
    async def test_installed(self):
        with patch(_RUN, new_callable=AsyncMock, return_value=_INSTALLED) as mock_run:
            assert await AptBackend(_make_executor()).is_installed("git") is True

        assert mock_run.call_args.args[0] == ["dpkg-query", "-W", "-f=${Status}", "git"]

    async def test_every_name_must_be_installed(self):
        with patch(_RUN, new_callable=AsyncMock, side_effect=[_INSTALLED, _NOT_INSTALLED]):
            assert await AptBackend(_make_executor()).is_installed("a b") is False

    async def test_deinstalled_status_is_not_installed(self):
        with patch(_RUN, new_callable=AsyncMock, return_value=(0, "deinstall ok config-files", "")):
            assert await AptBackend(_make_executor()).is_installed("git") is False

    async def test_dpkg_missing(self):
        with patch(_RUN, new_callable=AsyncMock, side_effect=FileNotFoundError):
            assert await AptBackend(_make_executor()).is_installed("git") is False

    async def test_invalid_name_not_queried(self):
        with patch(_RUN, new_callable=AsyncMock) as mock_run:
            assert await AptBackend(_make_executor()).is_installed("git;rm -rf /") is False

        mock_run.assert_not_awaited()


# --- install / uninstall ---------------------------------------------------


class TestInstall:
    async def test_updates_then_installs_noninteractively(self):
        executor = _make_executor()
        with patch(_RUN, new_callable=AsyncMock, return_value=_INSTALLED):
            result = await AptBackend(executor).install("git curl", "pw")

        assert result.success is True
        assert result.message == "Successfully installed git curl"
        assert _commands(executor) == [
            ["apt-get", "update"],
            ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "install", "-y", "git", "curl"],
        ]

    async def test_update_failure_is_tolerated(self):
        executor = _make_executor(fail_on="update")
        with patch(_RUN, new_callable=AsyncMock, return_value=_INSTALLED):
            result = await AptBackend(executor).install("git", "pw")

        assert result.success is True

    async def test_install_failure(self):
        executor = _make_executor(fail_on="install")
        with patch(_RUN, new_callable=AsyncMock, return_value=_NOT_INSTALLED):
            result = await AptBackend(executor).install("git", "pw")

        assert result.success is False
        assert "Failed to install git" in result.message
        assert result.output == "E: oops"

    async def test_exit_zero_but_not_installed_is_failure(self):
        with patch(_RUN, new_callable=AsyncMock, return_value=_NOT_INSTALLED):
            result = await AptBackend(_make_executor()).install("git", "pw")

        assert result.success is False

    async def test_non_zero_exit_is_failure_even_if_installed(self):
        executor = _make_executor(fail_on="install")
        with patch(_RUN, new_callable=AsyncMock, return_value=_INSTALLED):
            result = await AptBackend(executor).install("git", "pw")

        assert result.success is False

    async def test_invalid_name_rejected_without_commands(self):
        executor = _make_executor()

        result = await AptBackend(executor).install("git --allow-unauthenticated", "pw")

        assert result.success is False
        assert "--allow-unauthenticated" in result.message
        executor.run.assert_not_awaited()


class TestUninstall:
    async def test_removed(self):
        executor = _make_executor()
        with patch(_RUN, new_callable=AsyncMock, return_value=_NOT_INSTALLED):
            result = await AptBackend(executor).uninstall("git", "pw")

        assert result.success is True
        assert _commands(executor) == [
            ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "remove", "-y", "git"]
        ]

    async def test_still_installed_is_failure(self):
        executor = _make_executor(fail_on="remove")
        with patch(_RUN, new_callable=AsyncMock, return_value=_INSTALLED):
            result = await AptBackend(executor).uninstall("git", "pw")

        assert result.success is False
        assert "Failed to uninstall git" in result.message


class TestAutoremove:
    async def test_runs_autoremove(self):
        executor = _make_executor()

        result = await AptBackend(executor).autoremove("pw")

        assert result.success is True
        assert _commands(executor) == [
            ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "autoremove", "-y"]
        ]


# --- Queries ---------------------------------------------------------------


class TestQueries:
    async def test_package_info_first_stanza(self):
        output = (
            "Package: git\nVersion: 1:2.43.0\nDescription: fast VCS\n"
            " continued line\n\nPackage: git\nVersion: 1:2.40.0\n"
        )
        with patch(_RUN, new_callable=AsyncMock, return_value=(0, output, "")):
            info = await AptBackend(_make_executor()).get_package_info("git")

        assert info == {"Package": "git", "Version": "1:2.43.0", "Description": "fast VCS"}

    async def test_package_info_unknown(self):
        with patch(_RUN, new_callable=AsyncMock, return_value=(100, "", "E: No packages found")):
            assert await AptBackend(_make_executor()).get_package_info("nope") == {}

    async def test_dependencies(self):
        output = "git\n  Depends: libc6\n  Depends: perl\n  Recommends: less\n"
        with patch(_RUN, new_callable=AsyncMock, return_value=(0, output, "")):
            deps = await AptBackend(_make_executor()).get_dependencies("git")

        assert deps == ["libc6", "perl"]

    async def test_search(self):
        output = "git - fast, scalable, distributed revision control system\ngitk - history viewer\n"
        with patch(_RUN, new_callable=AsyncMock, return_value=(0, output, "")) as mock_run:
            results = await AptBackend(_make_executor()).search("git")

        assert results[1] == {"name": "gitk", "description": "history viewer"}
        assert mock_run.call_args.args[0] == ["apt-cache", "search", "--", "git"]

    async def test_search_rejects_option_like_terms(self):
        with patch(_RUN, new_callable=AsyncMock) as mock_run:
            assert await AptBackend(_make_executor()).search("--help") == []

        mock_run.assert_not_awaited()
