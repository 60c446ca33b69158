"""Named tool selections persisted as one JSON file per profile."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import shlex
import tempfile
import uuid
from collections import Counter
from dataclasses import asdict, dataclass, replace
from datetime import UTC, datetime
from pathlib import Path

from devsetup.errors import ProfileError
from devsetup.models import Catalog, Profile
from devsetup.resolver.graph import resolve

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
PROFILE_VERSION = "1.0"

_PROFILE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]*$")


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")


def _one_line(text: str) -> str:
    return " ".join(text.split())


def validate_profile(profile: Profile) -> list[str]:
    """Return every problem with ``profile``; empty means valid."""
    errors: list[str] = []
    if not profile.name or not profile.name.strip():
        errors.append("Profile name is required")
    elif len(profile.name) > MAX_NAME_LENGTH:
        errors.append(f"Profile name must be {MAX_NAME_LENGTH} characters or less")
    if not profile.tools:
        errors.append("Profile must contain at least one tool")
    elif not all(isinstance(t, str) and t for t in profile.tools):
        errors.append("Profile tools must be non-empty strings")
    return errors


def profile_from_dict(data: object) -> Profile:
    """Build a Profile from parsed JSON. Accepts camelCase timestamp keys too."""
    if not isinstance(data, dict):
        raise ProfileError("Profile must be a JSON object")
    tools = data.get("tools", [])
    if not isinstance(tools, list):
        raise ProfileError("Profile tools must be a list")
    if not all(isinstance(t, str) and t for t in tools):
        raise ProfileError("Profile tools must be non-empty strings")
    return Profile(
        id=str(data.get("id") or ""),
        name=str(data.get("name") or ""),
        tools=list(tools),
        description=str(data.get("description") or ""),
        created_at=str(data.get("created_at") or data.get("createdAt") or ""),
        updated_at=str(data.get("updated_at") or data.get("updatedAt") or ""),
        version=str(data.get("version") or PROFILE_VERSION),
    )


def _atomic_write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = None
    tmp_path: str | None = None
    try:
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp", prefix=".profile_")
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        os.write(fd, content.encode("utf-8"))
        os.close(fd)
        fd = None
        os.replace(tmp_path, str(path))
        tmp_path = None
    except OSError as exc:
        raise ProfileError(f"Failed to write profile {path.name}: {exc}") from exc
    finally:
        if fd is not None:
            os.close(fd)
        if tmp_path is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)


@dataclass(frozen=True, slots=True)
class ProfileStore:
    directory: Path

    def _path(self, profile_id: str) -> Path:
        if not _PROFILE_ID.match(profile_id):
            raise ProfileError(f"Invalid profile ID: {profile_id!r}")
        return self.directory / f"{profile_id}.json"

    def list_profiles(self) -> list[Profile]:
        """All readable profiles, newest first."""
        if not self.directory.is_dir():
            return []
        profiles: list[Profile] = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                profiles.append(profile_from_dict(json.loads(path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, ProfileError) as exc:
                logger.warning("Skipping unreadable profile %s: %s", path.name, exc)
        profiles.sort(key=lambda p: p.created_at, reverse=True)
        return profiles

    def get(self, profile_id: str) -> Profile:
        path = self._path(profile_id)
        try:
            return profile_from_dict(json.loads(path.read_text(encoding="utf-8")))
        except FileNotFoundError:
            raise ProfileError(f"Profile not found: {profile_id}") from None
        except (OSError, ValueError) as exc:
            raise ProfileError(f"Cannot read profile {profile_id}: {exc}") from exc

    def save(self, profile: Profile) -> Profile:
        """Validate and persist. Assigns an ID and creation time when missing."""
        now = _now_iso()
        stored = replace(
            profile,
            id=profile.id or str(uuid.uuid4()),
            created_at=profile.created_at or now,
            updated_at=now,
            version=PROFILE_VERSION,
        )
        errors = validate_profile(stored)
        if errors:
            raise ProfileError(f"Invalid profile: {', '.join(errors)}")
        _atomic_write_json(self._path(stored.id), asdict(stored))
        logger.info("Saved profile %s (%s)", stored.name, stored.id)
        return stored

    def update(
        self,
        profile_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        tools: list[str] | None = None,
    ) -> Profile:
        existing = self.get(profile_id)
        return self.save(
            replace(
                existing,
                id=profile_id,
                name=existing.name if name is None else name,
                description=existing.description if description is None else description,
                tools=existing.tools if tools is None else list(tools),
            )
        )

    def delete(self, profile_id: str) -> None:
        try:
            self._path(profile_id).unlink()
        except FileNotFoundError:
            raise ProfileError(f"Profile not found: {profile_id}") from None
        except OSError as exc:
            raise ProfileError(f"Failed to delete profile {profile_id}: {exc}") from exc
        logger.info("Deleted profile %s", profile_id)

    def export_profile(self, profile_id: str) -> str:
        return json.dumps(asdict(self.get(profile_id)), indent=2, ensure_ascii=False)

    def import_profile(self, text: str) -> Profile:
        """Store a profile from exported JSON under a fresh ID and timestamps."""
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise ProfileError(f"Profile is not valid JSON: {exc}") from exc
        return self.save(replace(profile_from_dict(data), id="", created_at=""))

    def duplicate(self, profile_id: str, new_name: str = "") -> Profile:
        original = self.get(profile_id)
        return self.save(
            replace(original, id="", created_at="", name=new_name or f"{original.name} (Copy)")
        )

    def search(self, term: str) -> list[Profile]:
        """Case-insensitive match on name or description."""
        profiles = self.list_profiles()
        if not term:
            return profiles
        needle = term.lower()
        return [
            p for p in profiles if needle in p.name.lower() or needle in p.description.lower()
        ]

    def statistics(self) -> dict[str, object]:
        profiles = self.list_profiles()
        usage = Counter(tool for p in profiles for tool in p.tools)
        total_tools = sum(len(p.tools) for p in profiles)
        return {
            "total_profiles": len(profiles),
            "total_tools": total_tools,
            "most_used_tools": dict(usage.most_common()),
            "average_tools_per_profile": (
                round(total_tools / len(profiles), 1) if profiles else 0.0
            ),
        }


def generate_install_script(profile: Profile, catalog: Catalog) -> str:
    """Standalone bash script installing a profile's tools in dependency order.

    Tool IDs the catalog does not know are skipped. Conflicting selections
    produce a script that refuses to run.
    """
    selected = [catalog.get(tid) for tid in profile.tools if tid in catalog]
    plan = resolve(selected, catalog.tools)

    lines = [
        "#!/bin/bash",
        "# devsetup installation script",
        f"# Profile: {_one_line(profile.name)}",
        f"# Description: {_one_line(profile.description) or 'No description'}",
        f"# Generated on: {_now_iso()}",
        "",
        "set -e",
        "",
        'if [ "$EUID" -ne 0 ]; then',
        '  echo "Please run as root (sudo)"',
        "  exit 1",
        "fi",
        "",
    ]

    if plan.conflicts:
        for conflict in plan.conflicts:
            lines.append(f"echo {shlex.quote('Conflict: ' + conflict.reason)} >&2")
        lines += ["exit 1", ""]
        return "\n".join(lines)

    lines += [f"echo {shlex.quote('Installing profile: ' + _one_line(profile.name))}", "apt-get update", ""]
    for tool in plan.install_order:
        lines.append(f"echo {shlex.quote('Installing ' + tool.name)}")
        lines.append(
            "DEBIAN_FRONTEND=noninteractive apt-get install -y "
            + " ".join(shlex.quote(name) for name in tool.packages)
        )
        if tool.post_install:
            lines.append(tool.post_install)
    lines += ["", 'echo "Installation complete"', ""]
    return "\n".join(lines)
