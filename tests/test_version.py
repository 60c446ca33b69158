"""Tests for package version resolution and the CLI entry point."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from unittest.mock import MagicMock, patch

import devsetup


class TestVersion:
    def test_version_is_a_string(self):
        assert isinstance(devsetup.__version__, str)
        assert devsetup.__version__

    def test_fallback_when_not_installed(self):
        with patch("devsetup._distribution_version", side_effect=PackageNotFoundError):
            assert devsetup._resolve_version() == "0.0.0+local"

    def test_uses_distribution_metadata(self):
        with patch("devsetup._distribution_version", return_value="1.2.3") as mock_version:
            assert devsetup._resolve_version() == "1.2.3"
        mock_version.assert_called_once_with("devsetup")


class TestMain:
    def test_runs_stdio_transport(self):
        fake_mcp = MagicMock()
        with (
            patch("devsetup.server.mcp", fake_mcp),
            patch("logging.basicConfig"),
        ):
            devsetup.main()

        fake_mcp.run.assert_called_once_with(transport="stdio")
