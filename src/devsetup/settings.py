"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 300.0
DEFAULT_VERIFY_TIMEOUT = 5.0


def _default_profiles_dir() -> str:
    return str(Path.home() / ".config" / "devsetup" / "profiles")


@dataclass(frozen=True, slots=True)
class Settings:
    """Configuration for one devsetup process.

    ``catalog_path`` empty means the built-in ``default`` catalog.
    ``catalog_url`` empty disables the remote fallback.
    """

    catalog_path: str = ""
    catalog_url: str = ""
    profiles_dir: str = field(default_factory=_default_profiles_dir)
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    verify_timeout: float = DEFAULT_VERIFY_TIMEOUT
    package_overrides: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            catalog_path=env.get("DEVSETUP_CATALOG", ""),
            catalog_url=env.get("DEVSETUP_CATALOG_URL", ""),
            profiles_dir=env.get("DEVSETUP_PROFILES_DIR", "") or _default_profiles_dir(),
            command_timeout=_parse_seconds(
                env.get("DEVSETUP_COMMAND_TIMEOUT", ""), DEFAULT_COMMAND_TIMEOUT
            ),
            verify_timeout=_parse_seconds(
                env.get("DEVSETUP_VERIFY_TIMEOUT", ""), DEFAULT_VERIFY_TIMEOUT
            ),
            package_overrides=parse_overrides(env.get("DEVSETUP_PACKAGE_OVERRIDES", "")),
        )


def _parse_seconds(raw: str, default: float) -> float:
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric timeout %r, using %ss", raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive timeout %r, using %ss", raw, default)
        return default
    return value


def parse_overrides(raw: str) -> dict[str, str]:
    """Parse ``"docker.io=docker-ce,fd-find=fd"`` into a mapping.

    Entries without ``=`` or with an empty side are skipped.
    """
    overrides: dict[str, str] = {}
    for entry in raw.split(","):
        name, sep, replacement = entry.partition("=")
        name, replacement = name.strip(), replacement.strip()
        if sep and name and replacement:
            overrides[name] = replacement
    return overrides
