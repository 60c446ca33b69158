"""Tests for profiles/store.py -- JSON profile persistence and script export."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from devsetup.errors import ProfileError
from devsetup.models import Catalog, Category, Profile, Tool
from devsetup.profiles.store import (
    ProfileStore,
    generate_install_script,
    profile_from_dict,
    validate_profile,
)


@pytest.fixture()
def store(tmp_path: Path) -> ProfileStore:
    return ProfileStore(tmp_path / "profiles")


def _profile(name: str = "Web stack", tools: list[str] | None = None, **kwargs) -> Profile:
    return Profile(id="", name=name, tools=["nginx", "docker"] if tools is None else tools, **kwargs)


class TestValidateProfile:
    def test_valid(self):
        assert validate_profile(_profile()) == []

    def test_missing_name_and_tools(self):
        errors = validate_profile(Profile(id="", name="  ", tools=[]))

        assert errors == ["Profile name is required", "Profile must contain at least one tool"]

    def test_name_length_limit(self):
        assert validate_profile(_profile(name="x" * 100)) == []
        assert validate_profile(_profile(name="x" * 101)) == [
            "Profile name must be 100 characters or less"
        ]


class TestProfileFromDict:
    def test_camel_case_timestamps(self):
        profile = profile_from_dict(
            {"id": "p1", "name": "A", "tools": ["git"], "createdAt": "2024-01-01T00:00:00Z"}
        )

        assert profile.created_at == "2024-01-01T00:00:00Z"
        assert profile.version == "1.0"

    def test_rejects_non_object(self):
        with pytest.raises(ProfileError):
            profile_from_dict(["git"])

    def test_rejects_non_list_tools(self):
        with pytest.raises(ProfileError, match="must be a list"):
            profile_from_dict({"name": "A", "tools": "git"})

    @pytest.mark.parametrize("tools", [[None], ["git", 5], [""]])
    def test_rejects_non_string_tools(self, tools):
        with pytest.raises(ProfileError, match="non-empty strings"):
            profile_from_dict({"name": "A", "tools": tools})


class TestSaveAndGet:
    def test_save_assigns_id_and_timestamps(self, store):
        saved = store.save(_profile())

        assert saved.id
        assert saved.created_at.endswith("Z")
        assert saved.updated_at == saved.created_at
        assert store.get(saved.id) == saved

    def test_written_as_json_file(self, store):
        saved = store.save(_profile())

        data = json.loads((store.directory / f"{saved.id}.json").read_text())
        assert data["name"] == "Web stack"
        assert data["tools"] == ["nginx", "docker"]

    def test_invalid_profile_not_written(self, store):
        with pytest.raises(ProfileError, match="Invalid profile"):
            store.save(_profile(tools=[]))

        assert store.list_profiles() == []

    def test_get_missing(self, store):
        with pytest.raises(ProfileError, match="Profile not found: nope"):
            store.get("nope")

    def test_path_traversal_id_rejected(self, store):
        with pytest.raises(ProfileError, match="Invalid profile ID"):
            store.get("../secrets")

    def test_no_temp_files_left(self, store):
        store.save(_profile())

        assert list(store.directory.glob("*.tmp")) == []


class TestListProfiles:
    def test_newest_first(self, store):
        store.save(_profile(name="old", created_at="2024-01-01T00:00:00Z"))
        store.save(_profile(name="new", created_at="2025-01-01T00:00:00Z"))

        assert [p.name for p in store.list_profiles()] == ["new", "old"]

    def test_missing_directory(self, store):
        assert store.list_profiles() == []

    def test_corrupt_file_skipped(self, store, caplog):
        store.save(_profile(name="good"))
        (store.directory / "broken.json").write_text("{not json")

        profiles = store.list_profiles()

        assert [p.name for p in profiles] == ["good"]
        assert "broken.json" in caplog.text


class TestUpdateAndDelete:
    def test_update_keeps_created_at(self, store):
        saved = store.save(_profile(created_at="2024-01-01T00:00:00Z"))

        updated = store.update(saved.id, name="Renamed", tools=["git"])

        assert updated.id == saved.id
        assert updated.name == "Renamed"
        assert updated.tools == ["git"]
        assert updated.description == saved.description
        assert updated.created_at == "2024-01-01T00:00:00Z"
        assert updated.updated_at != updated.created_at

    def test_update_replaces_file_whose_stored_id_differs(self, store):
        store.directory.mkdir(parents=True)
        (store.directory / "legacy.json").write_text(
            json.dumps({"id": "", "name": "Old", "tools": ["git"]})
        )

        updated = store.update("legacy", name="New")

        assert updated.id == "legacy"
        assert [p.name for p in store.list_profiles()] == ["New"]
        assert sorted(p.name for p in store.directory.glob("*.json")) == ["legacy.json"]

    def test_corrupt_tools_skipped_in_listing(self, store, caplog):
        store.directory.mkdir(parents=True)
        (store.directory / "bad.json").write_text(json.dumps({"name": "B", "tools": [None]}))

        assert store.list_profiles() == []
        assert "bad.json" in caplog.text

    def test_delete(self, store):
        saved = store.save(_profile())

        store.delete(saved.id)

        with pytest.raises(ProfileError):
            store.get(saved.id)

    def test_delete_missing(self, store):
        with pytest.raises(ProfileError, match="Profile not found"):
            store.delete("ghost")


class TestImportExport:
    def test_import_gets_new_identity(self, store):
        saved = store.save(_profile(created_at="2024-01-01T00:00:00Z"))

        imported = store.import_profile(store.export_profile(saved.id))

        assert imported.id != saved.id
        assert imported.created_at != saved.created_at
        assert imported.name == saved.name
        assert imported.tools == saved.tools
        assert len(store.list_profiles()) == 2

    def test_import_invalid_json(self, store):
        with pytest.raises(ProfileError, match="not valid JSON"):
            store.import_profile("{")

    def test_import_invalid_profile(self, store):
        with pytest.raises(ProfileError, match="at least one tool"):
            store.import_profile(json.dumps({"name": "Empty", "tools": []}))

    def test_import_non_string_tools_not_stored(self, store):
        with pytest.raises(ProfileError, match="non-empty strings"):
            store.import_profile(json.dumps({"name": "x", "tools": [None, 5]}))

        assert store.list_profiles() == []


class TestDuplicateAndSearch:
    def test_duplicate_default_name(self, store):
        saved = store.save(_profile())

        copy = store.duplicate(saved.id)

        assert copy.id != saved.id
        assert copy.name == "Web stack (Copy)"
        assert copy.tools == saved.tools

    def test_duplicate_custom_name(self, store):
        saved = store.save(_profile())

        assert store.duplicate(saved.id, "Mine").name == "Mine"

    def test_search_name_and_description_case_insensitive(self, store):
        store.save(_profile(name="Web stack"))
        store.save(_profile(name="Data", description="Postgres and WEB tooling"))
        store.save(_profile(name="Other"))

        names = sorted(p.name for p in store.search("web"))

        assert names == ["Data", "Web stack"]

    def test_empty_search_returns_all(self, store):
        store.save(_profile(name="a"))
        store.save(_profile(name="b"))

        assert len(store.search("")) == 2


class TestStatistics:
    def test_empty(self, store):
        assert store.statistics() == {
            "total_profiles": 0,
            "total_tools": 0,
            "most_used_tools": {},
            "average_tools_per_profile": 0.0,
        }

    def test_counts(self, store):
        store.save(_profile(tools=["git", "curl"]))
        store.save(_profile(tools=["git"]))
        store.save(_profile(tools=["git", "docker", "curl", "nginx"]))

        stats = store.statistics()

        assert stats["total_profiles"] == 3
        assert stats["total_tools"] == 7
        assert list(stats["most_used_tools"].items())[:2] == [("git", 3), ("curl", 2)]
        assert stats["average_tools_per_profile"] == 2.3


class TestGenerateInstallScript:
    def test_dependency_order_and_post_install(self, web_catalog):
        script = generate_install_script(_profile(tools=["docker"]), web_catalog)
        lines = script.splitlines()

        assert lines[0] == "#!/bin/bash"
        assert "set -e" in lines
        curl = lines.index("DEBIAN_FRONTEND=noninteractive apt-get install -y curl ca-certificates")
        docker = lines.index("DEBIAN_FRONTEND=noninteractive apt-get install -y docker.io")
        assert curl < docker
        assert lines[docker + 1] == "systemctl enable --now docker"
        assert lines.index("apt-get update") < curl

    def test_unknown_tools_skipped(self, web_catalog):
        script = generate_install_script(_profile(tools=["git", "ghost"]), web_catalog)

        assert "apt-get install -y git" in script
        assert "ghost" not in script

    def test_conflicts_refuse_to_run(self, web_catalog):
        script = generate_install_script(_profile(tools=["nginx", "apache"]), web_catalog)

        assert "apt-get install" not in script
        assert "Conflict: Nginx conflicts with Apache" in script
        assert script.rstrip().endswith("exit 1")

    def test_multiline_name_stays_in_comment(self, web_catalog):
        script = generate_install_script(
            _profile(name="evil\nrm -rf /", tools=["git"]), web_catalog
        )

        assert "# Profile: evil rm -rf /" in script
        assert "\nrm -rf /" not in script

    def test_package_names_quoted(self):
        catalog = Catalog(
            version="1",
            categories=[Category(id="c", name="C", tools=[Tool(id="t", name="T", package="a$(id)")])],
        )

        script = generate_install_script(_profile(tools=["t"]), catalog)

        assert "apt-get install -y 'a$(id)'" in script
