"""Toggleable config files kept in available/enabled directory pairs.

nginx and apache style layouts: every file lives in ``available_path`` and a
config is enabled when a same-named entry exists in ``enabled_path``.
Writes go through the privileged executor; reads do not.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from devsetup.errors import ConfigManagementError
from devsetup.models import CommandResult, ConfigFile, ConfigManagement
from devsetup.privilege.base import PrivilegedExecutorPort

logger = logging.getLogger(__name__)


def _check_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\0" in name:
        raise ConfigManagementError(f"Invalid config name: {name!r}")
    return name


def _raise_on_failure(result: CommandResult, action: str) -> None:
    if not result.success:
        raise ConfigManagementError(f"Failed to {action}: {result.error or result.stderr}")


@dataclass(frozen=True, slots=True)
class ConfigManager:
    """Lists, reads, writes and toggles config files for one tool at a time."""

    executor: PrivilegedExecutorPort

    def list_configs(self, cm: ConfigManagement) -> list[ConfigFile]:
        available = Path(cm.available_path)
        if not available.is_dir():
            return []
        enabled = Path(cm.enabled_path)
        return [
            ConfigFile(name=entry.name, enabled=(enabled / entry.name).is_symlink())
            for entry in sorted(available.iterdir(), key=lambda p: p.name)
            if entry.is_file()
        ]

    def read_config(self, cm: ConfigManagement, name: str) -> str:
        path = Path(cm.available_path) / _check_name(name)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigManagementError(f"Cannot read config {name}: {exc}") from exc

    async def save_config(
        self, cm: ConfigManagement, name: str, content: str, credential: str
    ) -> None:
        """Write ``content`` to ``available_path/name`` with mode 644."""
        target = Path(cm.available_path) / _check_name(name)
        fd, tmp_path = tempfile.mkstemp(prefix=".devsetup-config_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            result = await self.executor.run(
                ["install", "-m", "644", tmp_path, str(target)], credential
            )
        finally:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
        _raise_on_failure(result, f"save config {name}")
        logger.info("Saved config %s", target)

    async def toggle_config(
        self, cm: ConfigManagement, name: str, enable: bool, credential: str
    ) -> None:
        """Enable or disable a config, then reload the owning service."""
        _check_name(name)
        if cm.type == "apache":
            command = ["a2ensite" if enable else "a2dissite", name]
        elif enable:
            command = [
                "ln",
                "-sf",
                str(Path(cm.available_path) / name),
                str(Path(cm.enabled_path) / name),
            ]
        else:
            command = ["rm", "-f", str(Path(cm.enabled_path) / name)]

        results = await self.executor.run_sequential(
            [command, ["systemctl", "reload", cm.service_name]], credential
        )
        action = "enable" if enable else "disable"
        for result in results:
            _raise_on_failure(result, f"{action} config {name}")
        logger.info("%sd config %s for %s", action.capitalize(), name, cm.service_name)

    async def delete_config(self, cm: ConfigManagement, name: str, credential: str) -> None:
        """Disable the config if enabled, then remove it from ``available_path``."""
        _check_name(name)
        if (Path(cm.enabled_path) / name).is_symlink():
            await self.toggle_config(cm, name, False, credential)
        result = await self.executor.run(
            ["rm", "-f", str(Path(cm.available_path) / name)], credential
        )
        _raise_on_failure(result, f"delete config {name}")
        logger.info("Deleted config %s", name)
