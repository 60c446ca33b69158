"""Port: Dependency resolution over a tool catalog."""

from __future__ import annotations

from typing import Protocol

from devsetup.models import (
    Conflict,
    DependencyGraph,
    ResolveResult,
    Tool,
    ValidationReport,
)


class DependencyResolverPort(Protocol):
    """Port for resolving install order and conflicts against one catalog."""

    def detect_conflicts(self, selected: list[Tool]) -> list[Conflict]:
        """Return one record per conflicting pair in the selection."""
        ...

    def resolve(self, selected: list[Tool]) -> ResolveResult:
        """Compute conflicts, then a dependency-first install order if there are none."""
        ...

    def get_all_dependencies(self, tool: Tool) -> list[Tool]:
        """Transitive dependencies of one tool, in discovery order."""
        ...

    def has_circular_dependency(self, tool: Tool) -> bool:
        """True when a dependency cycle is reachable from ``tool``."""
        ...

    def get_reverse_dependencies(self, tool_id: str) -> list[Tool]:
        """Tools that list ``tool_id`` as a direct dependency."""
        ...

    def validate(self) -> ValidationReport:
        """Check the whole catalog for integrity errors."""
        ...

    def build_graph(self) -> DependencyGraph:
        """Project the catalog into nodes and typed edges."""
        ...

    def suggest_additional_tools(self, selected: list[Tool]) -> list[Tool]:
        """Direct dependencies of the selection that are not selected."""
        ...
