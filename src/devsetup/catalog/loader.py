"""Load the tool catalog from YAML/JSON files, built-in presets, or a remote URL."""

from __future__ import annotations

import importlib.resources
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx
import yaml

from devsetup.errors import CatalogError
from devsetup.models import Catalog, Category, ConfigManagement, Extra, Tool

logger = logging.getLogger(__name__)

# Built-in catalog names
BUILTIN_CATALOGS = {"default"}

_CATALOG_SUFFIXES = (".yaml", ".yml", ".json")


def load_catalog(name_or_path: str = "") -> Catalog:
    """Load a catalog by built-in name or file path.

    Args:
        name_or_path: A built-in catalog name (e.g. "default"), a path to a
            .yaml/.yml/.json file, or empty for the default catalog.

    Returns:
        Parsed, shape-validated Catalog.

    Raises:
        CatalogError: If the catalog cannot be loaded or fails validation.
    """
    if not name_or_path:
        return _load_builtin("default")

    path = Path(name_or_path)
    if path.suffix in _CATALOG_SUFFIXES or path.exists():
        return _load_from_file(path)

    if name_or_path in BUILTIN_CATALOGS:
        return _load_builtin(name_or_path)

    raise CatalogError(
        f"Unknown catalog '{name_or_path}'. "
        f"Available built-in catalogs: {', '.join(sorted(BUILTIN_CATALOGS))}. "
        "Or provide a path to a .yaml or .json file."
    )


async def load_catalog_with_fallback(
    name_or_path: str,
    http: httpx.AsyncClient | None = None,
    url: str = "",
) -> Catalog:
    """Load a local catalog, falling back to ``url`` when the local one fails.

    Raises:
        CatalogError: If the local source fails and there is no usable remote.
    """
    try:
        return load_catalog(name_or_path)
    except CatalogError as local_exc:
        if not url or http is None:
            raise
        logger.warning("Local catalog failed (%s), fetching %s", local_exc, url)
        try:
            return await fetch_catalog(http, url)
        except CatalogError as remote_exc:
            raise CatalogError(
                f"Could not load catalog. Local: {local_exc} Remote: {remote_exc}"
            ) from remote_exc


async def fetch_catalog(http: httpx.AsyncClient, url: str) -> Catalog:
    """Download and parse a catalog document."""
    try:
        response = await http.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise CatalogError(f"Failed to fetch catalog from {url}: {exc}") from exc
    return _parse_text(response.text, source=url)


def _load_builtin(name: str) -> Catalog:
    """Load a built-in catalog from package resources."""
    try:
        ref = importlib.resources.files("devsetup") / "catalog" / "presets" / f"{name}.yaml"
        text = ref.read_text(encoding="utf-8")
        return _parse_text(text, source=f"builtin:{name}")
    except FileNotFoundError:
        raise CatalogError(f"Built-in catalog '{name}' not found.") from None


def _load_from_file(path: Path) -> Catalog:
    """Load a catalog from a YAML or JSON file on disk."""
    if not path.exists():
        raise CatalogError(f"Catalog file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Failed to read catalog file '{path}': {exc}") from exc
    return _parse_text(text, source=str(path))


def _parse_text(text: str, source: str = "") -> Catalog:
    # JSON is a subset of YAML, so one parser covers both formats.
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CatalogError(f"Failed to parse catalog {source}: {exc}") from exc
    return parse_catalog(data, source=source)


def parse_catalog(data: object, source: str = "") -> Catalog:
    """Validate a raw catalog document and build a Catalog.

    Rejects the whole document on the first shape error. Dangling
    dependency references are NOT rejected here; that is an integrity
    check for ``validate_configuration``.
    """
    where = f" in {source}" if source else ""
    if not isinstance(data, dict):
        raise CatalogError(f"Invalid catalog format{where}: expected a mapping.")

    version = data.get("version")
    if not isinstance(version, str | int | float) or isinstance(version, bool):
        raise CatalogError(f"Invalid catalog format{where}: 'version' must be a string.")

    categories_data = data.get("categories")
    if not isinstance(categories_data, list):
        raise CatalogError(f"Invalid catalog format{where}: 'categories' must be a list.")

    categories: list[Category] = []
    seen_ids: set[str] = set()
    for index, entry in enumerate(categories_data):
        category = _parse_category(entry, f"categories[{index}]{where}")
        for tool in category.tools:
            if tool.id in seen_ids:
                raise CatalogError(f"Duplicate tool id '{tool.id}'{where}.")
            seen_ids.add(tool.id)
        categories.append(category)

    return Catalog(version=str(version), categories=categories)


def _parse_category(entry: object, where: str) -> Category:
    if not isinstance(entry, dict):
        raise CatalogError(f"Invalid category at {where}: expected a mapping.")
    cat_id = _require_str(entry, "id", where)
    name = _require_str(entry, "name", where)
    tools_data = entry.get("tools")
    if not isinstance(tools_data, list):
        raise CatalogError(f"Invalid category '{cat_id}': 'tools' must be a list.")
    tools = [_parse_tool(t, f"tool #{i} of category '{cat_id}'") for i, t in enumerate(tools_data)]
    return Category(
        id=cat_id,
        name=name,
        tools=tools,
        icon=_optional_str(entry, "icon", where),
        description=_optional_str(entry, "description", where),
    )


def _parse_tool(entry: object, where: str) -> Tool:
    if not isinstance(entry, dict):
        raise CatalogError(f"Invalid {where}: expected a mapping.")
    tool_id = _require_str(entry, "id", where)
    where = f"tool '{tool_id}'"

    post_install = entry.get("postInstall")
    if post_install is not None and not isinstance(post_install, str):
        raise CatalogError(f"Invalid {where}: 'postInstall' must be a string.")

    return Tool(
        id=tool_id,
        name=_require_str(entry, "name", where),
        package=_parse_package(entry.get("package"), where),
        dependencies=_optional_str_list(entry, "dependencies", where),
        conflicts=_optional_str_list(entry, "conflicts", where),
        post_install=post_install or None,
        extras=_parse_extras(entry.get("extras"), where),
        config_management=_parse_config_management(entry.get("configManagement"), where),
        description=_optional_str(entry, "description", where),
        version=str(entry.get("version", "") or ""),
        size=_optional_str(entry, "size", where),
        website=_optional_str(entry, "website", where),
        check_command=_optional_str(entry, "checkCommand", where),
    )


def _parse_package(value: object, where: str) -> str:
    """Accept a space-delimited string or a list of package names."""
    if isinstance(value, str) and value.strip():
        return " ".join(value.split())
    if isinstance(value, list) and value and all(isinstance(p, str) and p for p in value):
        return " ".join(value)
    raise CatalogError(f"Invalid {where}: 'package' must be a non-empty string or list.")


def _parse_extras(value: object, where: str) -> list[Extra]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise CatalogError(f"Invalid {where}: 'extras' must be a list.")
    extras: list[Extra] = []
    for index, raw in enumerate(value):
        extra_where = f"extra #{index} of {where}"
        if not isinstance(raw, dict):
            raise CatalogError(f"Invalid {extra_where}: expected a mapping.")
        extras.append(
            Extra(
                id=_require_str(raw, "id", extra_where),
                name=_require_str(raw, "name", extra_where),
                package=_parse_package(raw.get("package"), extra_where),
                description=_optional_str(raw, "description", extra_where),
            )
        )
    return extras


def _parse_config_management(value: object, where: str) -> ConfigManagement | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise CatalogError(f"Invalid {where}: 'configManagement' must be a mapping.")
    cm_where = f"configManagement of {where}"
    return ConfigManagement(
        type=_require_str(value, "type", cm_where),
        available_path=_require_str(value, "availablePath", cm_where),
        enabled_path=_require_str(value, "enabledPath", cm_where),
        service_name=_require_str(value, "serviceName", cm_where),
    )


def _require_str(entry: dict, key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"Invalid {where}: '{key}' must be a non-empty string.")
    return value


def _optional_str(entry: dict, key: str, where: str) -> str:
    value = entry.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise CatalogError(f"Invalid {where}: '{key}' must be a string.")
    return value


def _optional_str_list(entry: dict, key: str, where: str) -> list[str]:
    value = entry.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CatalogError(f"Invalid {where}: '{key}' must be a list of strings.")
    return list(value)


@dataclass
class DefaultCatalogLoader:
    """Adapter for CatalogLoaderPort: local source first, remote URL as fallback."""

    source: str = ""
    http: httpx.AsyncClient | None = None
    url: str = ""

    async def load(self) -> Catalog:
        catalog = await load_catalog_with_fallback(self.source, self.http, self.url)
        logger.info("Loaded catalog %s with %d tools", catalog.version, len(catalog))
        return catalog
