"""Port: Tool catalog loading."""

from __future__ import annotations

from typing import Protocol

from devsetup.models import Catalog


class CatalogLoaderPort(Protocol):
    """Port for loading the tool catalog from a file, preset, or remote source."""

    async def load(self) -> Catalog:
        """Load and shape-validate the catalog. Raises CatalogError on failure."""
        ...
