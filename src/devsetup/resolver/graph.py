"""Dependency graph algorithms over catalog tools.

Pure functions, no I/O. Traversals use explicit stacks of iterators so
large catalogs never hit the recursion limit; each stack frame is
``(tool, iterator over its remaining dependency IDs)``, which keeps the
visiting order identical to a recursive depth-first walk.

Dependencies that are not in the catalog are skipped everywhere except
``validate_configuration``, which reports them.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from devsetup.models import (
    Catalog,
    Conflict,
    DependencyGraph,
    EdgeType,
    GraphEdge,
    GraphNode,
    ResolveResult,
    Tool,
    ValidationIssue,
    ValidationReport,
)

# Warn (but do not fail) when a tool declares more direct dependencies than this.
MAX_DEPENDENCIES_BEFORE_WARNING = 5

_GRAY = 1
_BLACK = 2


def _index(tools: Sequence[Tool]) -> dict[str, Tool]:
    return {tool.id: tool for tool in tools}


def detect_conflicts(selected: Sequence[Tool]) -> list[Conflict]:
    """Find every pair of selected tools where either side declares the other.

    Pairs are checked in ``i < j`` order over the selection, declaration on
    the earlier tool first. A pair declared from both sides is reported once,
    in the direction it was first found.
    """
    conflicts: list[Conflict] = []
    seen: set[tuple[str, str]] = set()

    for i, first in enumerate(selected):
        for second in selected[i + 1 :]:
            for owner, other in ((first, second), (second, first)):
                if other.id not in owner.conflicts:
                    continue
                key = tuple(sorted((owner.id, other.id)))
                if key in seen:
                    continue
                seen.add(key)
                conflicts.append(
                    Conflict(
                        tool1=owner.id,
                        tool1_name=owner.name,
                        tool2=other.id,
                        tool2_name=other.name,
                        reason=f"{owner.name} conflicts with {other.name}",
                    )
                )
    return conflicts


def resolve(selected: Sequence[Tool], all_tools: Sequence[Tool]) -> ResolveResult:
    """Compute conflicts and a dependency-first install order.

    When any conflict exists the install order is empty: no plan is
    proposed for a self-contradictory request. Otherwise each selected tool
    is walked depth-first, dependencies in declared order, and appended
    after all of its dependencies. A tool reachable along several paths is
    placed once, at its first completed position.
    """
    conflicts = detect_conflicts(selected)
    if conflicts:
        return ResolveResult(install_order=[], conflicts=conflicts)

    by_id = _index(all_tools)
    visited: set[str] = set()
    order: list[Tool] = []

    for root in selected:
        if root.id in visited:
            continue
        visited.add(root.id)
        stack: list[tuple[Tool, Iterator[str]]] = [(root, iter(root.dependencies))]
        while stack:
            current, remaining = stack[-1]
            for dep_id in remaining:
                dep = by_id.get(dep_id)
                if dep is None or dep.id in visited:
                    continue
                visited.add(dep.id)
                stack.append((dep, iter(dep.dependencies)))
                break
            else:
                stack.pop()
                order.append(current)

    return ResolveResult(install_order=order, conflicts=[])


def get_all_dependencies(tool: Tool, all_tools: Sequence[Tool]) -> list[Tool]:
    """Transitive dependencies of ``tool``, excluding itself, each listed once."""
    by_id = _index(all_tools)
    seen: set[str] = {tool.id}
    found: list[Tool] = []
    stack: list[Iterator[str]] = [iter(tool.dependencies)]

    while stack:
        for dep_id in stack[-1]:
            dep = by_id.get(dep_id)
            if dep is None or dep.id in seen:
                continue
            seen.add(dep.id)
            found.append(dep)
            stack.append(iter(dep.dependencies))
            break
        else:
            stack.pop()

    return found


def has_circular_dependency(tool: Tool, all_tools: Sequence[Tool]) -> bool:
    """Three-color depth-first search from ``tool``.

    Returns True on any back-edge to a node still on the current path,
    including a cycle reachable from ``tool`` that does not pass through it.
    """
    by_id = _index(all_tools)
    color: dict[str, int] = {tool.id: _GRAY}
    stack: list[tuple[str, Iterator[str]]] = [(tool.id, iter(tool.dependencies))]

    while stack:
        node_id, remaining = stack[-1]
        for dep_id in remaining:
            dep = by_id.get(dep_id)
            if dep is None:
                continue
            state = color.get(dep.id)
            if state == _GRAY:
                return True
            if state is None:
                color[dep.id] = _GRAY
                stack.append((dep.id, iter(dep.dependencies)))
                break
        else:
            color[node_id] = _BLACK
            stack.pop()

    return False


def get_reverse_dependencies(tool_id: str, all_tools: Sequence[Tool]) -> list[Tool]:
    """Tools whose direct dependencies include ``tool_id``."""
    return [tool for tool in all_tools if tool_id in tool.dependencies]


def validate_configuration(all_tools: Sequence[Tool]) -> ValidationReport:
    """Catalog-wide integrity check.

    Errors: duplicate IDs, dangling dependency references, circular
    dependencies, self-dependency, self-conflict, and dependencies that are
    also declared as conflicts. Warning: more than
    ``MAX_DEPENDENCIES_BEFORE_WARNING`` direct dependencies.
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    known_ids: set[str] = set()

    for tool in all_tools:
        if tool.id in known_ids:
            errors.append(ValidationIssue(tool.id, f"Duplicate tool id: {tool.id}"))
        known_ids.add(tool.id)

    for tool in all_tools:
        for dep_id in tool.dependencies:
            if dep_id not in known_ids:
                errors.append(ValidationIssue(tool.id, f"Missing dependency: {dep_id}"))

        if has_circular_dependency(tool, all_tools):
            errors.append(ValidationIssue(tool.id, "Circular dependency detected"))

        if tool.id in tool.dependencies:
            errors.append(ValidationIssue(tool.id, "Tool depends on itself"))

        if tool.id in tool.conflicts:
            errors.append(ValidationIssue(tool.id, "Tool conflicts with itself"))

        overlap = [dep_id for dep_id in tool.dependencies if dep_id in tool.conflicts]
        if overlap:
            errors.append(
                ValidationIssue(
                    tool.id, f"Tool depends on conflicting tools: {', '.join(overlap)}"
                )
            )

        if len(tool.dependencies) > MAX_DEPENDENCIES_BEFORE_WARNING:
            warnings.append(
                ValidationIssue(tool.id, f"Tool has {len(tool.dependencies)} dependencies")
            )

    return ValidationReport(valid=not errors, errors=errors, warnings=warnings)


def build_dependency_graph(tools: Sequence[Tool]) -> DependencyGraph:
    """One node per tool, one typed edge per declared dependency and conflict."""
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    for tool in tools:
        nodes.append(
            GraphNode(
                id=tool.id,
                name=tool.name,
                dependency_count=len(tool.dependencies),
                conflict_count=len(tool.conflicts),
            )
        )
        edges.extend(GraphEdge(tool.id, dep_id, EdgeType.DEPENDENCY) for dep_id in tool.dependencies)
        edges.extend(GraphEdge(tool.id, other, EdgeType.CONFLICT) for other in tool.conflicts)
    return DependencyGraph(nodes=nodes, edges=edges)


def suggest_additional_tools(selected: Sequence[Tool], all_tools: Sequence[Tool]) -> list[Tool]:
    """Direct dependencies of the selection that are not themselves selected.

    Returned in catalog order.
    """
    selected_ids = {tool.id for tool in selected}
    wanted = {
        dep_id for tool in selected for dep_id in tool.dependencies if dep_id not in selected_ids
    }
    return [tool for tool in all_tools if tool.id in wanted]


@dataclass(frozen=True, slots=True)
class DefaultDependencyResolver:
    """Adapter for DependencyResolverPort bound to one catalog handle."""

    catalog: Catalog

    def detect_conflicts(self, selected: list[Tool]) -> list[Conflict]:
        return detect_conflicts(selected)

    def resolve(self, selected: list[Tool]) -> ResolveResult:
        return resolve(selected, self.catalog.tools)

    def get_all_dependencies(self, tool: Tool) -> list[Tool]:
        return get_all_dependencies(tool, self.catalog.tools)

    def has_circular_dependency(self, tool: Tool) -> bool:
        return has_circular_dependency(tool, self.catalog.tools)

    def get_reverse_dependencies(self, tool_id: str) -> list[Tool]:
        return get_reverse_dependencies(tool_id, self.catalog.tools)

    def validate(self) -> ValidationReport:
        return validate_configuration(self.catalog.tools)

    def build_graph(self) -> DependencyGraph:
        return build_dependency_graph(self.catalog.tools)

    def suggest_additional_tools(self, selected: list[Tool]) -> list[Tool]:
        return suggest_additional_tools(selected, self.catalog.tools)
