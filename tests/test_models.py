"""Tests for models.py -- catalog lookups and record helpers."""

from __future__ import annotations

import dataclasses

import pytest

from devsetup.errors import SelectionError
from devsetup.models import (
    Catalog,
    Category,
    InstallStatus,
    ResolveResult,
    RunState,
    Tool,
)


def _catalog() -> Catalog:
    return Catalog(
        version="1",
        categories=[
            Category(id="one", name="One", tools=[Tool(id="a", name="A", package="pa")]),
            Category(
                id="two",
                name="Two",
                tools=[Tool(id="b", name="B", package="pb"), Tool(id="c", name="C", package="pc")],
            ),
        ],
    )


class TestCatalog:
    def test_tools_flattened_in_category_order(self):
        assert [t.id for t in _catalog().tools] == ["a", "b", "c"]

    def test_get_known_and_unknown(self):
        catalog = _catalog()

        assert catalog.get("b").name == "B"
        assert catalog.get("zzz") is None

    def test_contains_and_len(self):
        catalog = _catalog()

        assert "c" in catalog
        assert "zzz" not in catalog
        assert len(catalog) == 3

    def test_require_preserves_order(self):
        assert [t.id for t in _catalog().require(["c", "a"])] == ["c", "a"]

    def test_require_names_every_unknown_id(self):
        with pytest.raises(SelectionError, match="Unknown tool ID\\(s\\): x, y"):
            _catalog().require(["a", "x", "y"])

    def test_empty_catalog_has_zero_length(self):
        assert len(Catalog(version="1")) == 0

    def test_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            _catalog().version = "2"


class TestTool:
    def test_packages_split(self):
        tool = Tool(id="py", name="Python", package="python3 python3-pip")

        assert tool.packages == ["python3", "python3-pip"]

    def test_get_extra(self):
        from devsetup.models import Extra

        tool = Tool(id="g", name="G", package="g", extras=[Extra(id="x", name="X", package="px")])

        assert tool.get_extra("x").package == "px"
        assert tool.get_extra("missing") is None

    def test_optional_fields_default_empty(self):
        tool = Tool(id="t", name="T", package="t")

        assert tool.dependencies == []
        assert tool.conflicts == []
        assert tool.extras == []
        assert tool.post_install is None
        assert tool.config_management is None


class TestEnums:
    def test_values_serialize_as_strings(self):
        assert InstallStatus.UNINSTALLING == "uninstalling"
        assert RunState.CONFLICT_BLOCKED == "conflict_blocked"

    def test_resolve_result_install_ids(self):
        result = ResolveResult(install_order=[Tool(id="a", name="A", package="a")])

        assert result.install_ids == ["a"]
