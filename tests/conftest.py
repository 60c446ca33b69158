"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from devsetup.models import Catalog, Category, ConfigManagement, Extra, Tool
from devsetup.server import build_app_context
from devsetup.settings import Settings


@pytest.fixture
def web_catalog() -> Catalog:
    """Small catalog with a dependency chain, a conflict pair, extras and config management."""
    return Catalog(
        version="1.0",
        categories=[
            Category(
                id="base",
                name="Base",
                tools=[
                    Tool(id="curl", name="cURL", package="curl ca-certificates"),
                    Tool(
                        id="git",
                        name="Git",
                        package="git",
                        extras=[
                            Extra(id="git-lfs", name="Git LFS", package="git-lfs"),
                            Extra(id="git-gui", name="Git GUI", package="git-gui gitk"),
                        ],
                    ),
                ],
            ),
            Category(
                id="web",
                name="Web",
                tools=[
                    Tool(
                        id="nginx",
                        name="Nginx",
                        package="nginx",
                        conflicts=["apache"],
                        config_management=ConfigManagement(
                            type="nginx",
                            available_path="/etc/nginx/sites-available",
                            enabled_path="/etc/nginx/sites-enabled",
                            service_name="nginx",
                        ),
                    ),
                    Tool(id="apache", name="Apache", package="apache2"),
                    Tool(
                        id="docker",
                        name="Docker",
                        package="docker.io",
                        dependencies=["curl"],
                        post_install="systemctl enable --now docker",
                    ),
                ],
            ),
        ],
    )


@pytest.fixture
def make_app(web_catalog, tmp_path):
    """Build an AppContext over ``web_catalog``; keyword args replace adapters."""

    def factory(**overrides):
        app = build_app_context(
            MagicMock(), Settings(profiles_dir=str(tmp_path / "profiles")), web_catalog
        )
        return replace(app, **overrides) if overrides else app

    return factory


@pytest.fixture
def make_ctx():
    """MCP Context double whose lifespan context is the given AppContext."""

    def factory(app=None):
        ctx = MagicMock()
        ctx.info = AsyncMock()
        ctx.error = AsyncMock()
        ctx.report_progress = AsyncMock()
        ctx.request_context.lifespan_context = app
        return ctx

    return factory
