"""Domain models for devsetup. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from devsetup.errors import SelectionError

# ─── Enumerations ─────────────────────────────────────────────


class InstallStatus(StrEnum):
    INSTALLING = "installing"
    UNINSTALLING = "uninstalling"
    COMPLETED = "completed"
    FAILED = "failed"


class RunState(StrEnum):
    PREPARING = "preparing"
    RESOLVING = "resolving"
    CONFLICT_BLOCKED = "conflict_blocked"
    INSTALLING = "installing"
    COMPLETED = "completed"
    FAILED = "failed"


class EdgeType(StrEnum):
    DEPENDENCY = "dependency"
    CONFLICT = "conflict"


# ─── Catalog Models ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Extra:
    """An optional sub-module of a tool, installed as its own package."""

    id: str
    name: str
    package: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class ConfigManagement:
    """Where a tool keeps toggleable config files (sites-available style)."""

    type: str
    available_path: str
    enabled_path: str
    service_name: str


@dataclass(frozen=True, slots=True)
class Tool:
    """An installable catalog entry."""

    id: str
    name: str
    package: str
    dependencies: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    post_install: str | None = None
    extras: list[Extra] = field(default_factory=list)
    config_management: ConfigManagement | None = None
    description: str = ""
    version: str = ""
    size: str = ""
    website: str = ""
    check_command: str = ""

    @property
    def packages(self) -> list[str]:
        """OS package names, split from the space-delimited ``package`` string."""
        return self.package.split()

    def get_extra(self, extra_id: str) -> Extra | None:
        for extra in self.extras:
            if extra.id == extra_id:
                return extra
        return None


@dataclass(frozen=True, slots=True)
class Category:
    """A display grouping of tools. Has no effect on resolution."""

    id: str
    name: str
    tools: list[Tool] = field(default_factory=list)
    icon: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class Catalog:
    """Read-only handle over every tool, looked up by ID."""

    version: str
    categories: list[Category] = field(default_factory=list)
    _by_id: dict[str, Tool] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {t.id: t for c in self.categories for t in c.tools})

    @property
    def tools(self) -> list[Tool]:
        """All tools flattened across categories, in category order."""
        return [tool for category in self.categories for tool in category.tools]

    def get(self, tool_id: str) -> Tool | None:
        return self._by_id.get(tool_id)

    def require(self, tool_ids: list[str]) -> list[Tool]:
        """Look up every ID in order, naming all unknown IDs at once."""
        missing = [tid for tid in tool_ids if tid not in self._by_id]
        if missing:
            raise SelectionError(f"Unknown tool ID(s): {', '.join(missing)}")
        return [self._by_id[tid] for tid in tool_ids]

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


# ─── Resolver Models ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Conflict:
    """Two selected tools that cannot be installed together."""

    tool1: str
    tool1_name: str
    tool2: str
    tool2_name: str
    reason: str


@dataclass(frozen=True, slots=True)
class ResolveResult:
    install_order: list[Tool] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)

    @property
    def install_ids(self) -> list[str]:
        return [tool.id for tool in self.install_order]


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    tool: str
    message: str


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Catalog integrity check outcome."""

    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class GraphNode:
    id: str
    name: str
    dependency_count: int = 0
    conflict_count: int = 0


@dataclass(frozen=True, slots=True)
class GraphEdge:
    source: str
    target: str
    type: EdgeType


@dataclass(frozen=True, slots=True)
class DependencyGraph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "nodes": [
                {
                    "id": n.id,
                    "name": n.name,
                    "dependency_count": n.dependency_count,
                    "conflict_count": n.conflict_count,
                }
                for n in self.nodes
            ],
            "edges": [{"from": e.source, "to": e.target, "type": e.type.value} for e in self.edges],
        }


# ─── Execution Models ─────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one privileged command."""

    command: list[str]
    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    error: str = ""


@dataclass(frozen=True, slots=True)
class StreamChunk:
    """A piece of output from a streaming command."""

    stream: str  # "stdout" or "stderr"
    data: str


@dataclass(frozen=True, slots=True)
class CredentialStrength:
    valid: bool
    strength: str  # "weak", "medium", "strong"
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PackageResult:
    success: bool
    package: str
    message: str
    output: str = ""


# ─── Orchestration Models ─────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """One tool transition, emitted to the registered progress sink."""

    tool_id: str
    status: InstallStatus
    progress: float  # percentage, 0..100
    message: str


@dataclass(frozen=True, slots=True)
class ToolResult:
    tool_id: str
    name: str
    success: bool
    message: str


@dataclass(frozen=True, slots=True)
class InstallReport:
    """Aggregate outcome of one install run."""

    success: bool
    state: RunState
    results: list[ToolResult] = field(default_factory=list)
    installed_count: int = 0
    failed_count: int = 0
    conflicts: list[Conflict] = field(default_factory=list)
    error: str = ""


@dataclass(frozen=True, slots=True)
class UninstallReport:
    success: bool
    tool_id: str
    name: str = ""
    message: str = ""


@dataclass(frozen=True, slots=True)
class ExtraResult:
    extra_id: str
    name: str
    action: str  # "install" or "remove"
    success: bool
    message: str


@dataclass(frozen=True, slots=True)
class ExtrasReport:
    success: bool
    tool_id: str
    results: list[ExtraResult] = field(default_factory=list)
    error: str = ""


@dataclass(frozen=True, slots=True)
class ExtraStatus:
    id: str
    name: str
    package: str
    installed: bool
    description: str = ""


# ─── Collaborator Models ──────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ConfigFile:
    """A config file in a tool's available directory."""

    name: str
    enabled: bool


@dataclass(frozen=True, slots=True)
class Profile:
    """A named, reusable tool selection."""

    id: str
    name: str
    tools: list[str] = field(default_factory=list)
    description: str = ""
    created_at: str = ""
    updated_at: str = ""
    version: str = "1.0"
