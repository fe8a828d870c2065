"""Graph data models produced by the builder and consumed by renderers."""

from dataclasses import dataclass, field
from enum import Enum

from tfops.config import GroupBy
from tfops.models.plan import ActionType

ROOT_GROUP = "root"


class NodeKind(str, Enum):
    """Kinds of graph nodes."""
    RESOURCE = "resource"
    DATA_SOURCE = "data-source"
    OUTPUT = "output"
    VARIABLE = "variable"
    LOCAL = "local"


class EdgeKind(str, Enum):
    """Edge kinds. Edges point from the consumer to its dependency."""
    DEPENDENCY = "dependency"
    DATA_FLOW = "data-flow"


@dataclass(frozen=True)
class Node:
    """A renderable graph node."""
    id: str  # Sanitized identifier
    address: str
    label: str
    kind: NodeKind
    action: ActionType
    group: str  # Group key
    sensitive: bool = False
    type: str = ""
    name: str = ""
    module: str = ""
    provider: str = ""
    details: tuple[str, ...] = ()  # Changed attribute names


@dataclass(frozen=True)
class Edge:
    """A dependency between two included nodes."""
    source: str  # Consumer node id
    target: str  # Dependency node id
    kind: EdgeKind


@dataclass(frozen=True)
class Group:
    """A grouping construct (cluster, subgraph or package)."""
    key: str
    label: str
    parent: str | None = None
    node_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Graph:
    """Immutable, deterministically ordered graph."""
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    groups: tuple[Group, ...] = ()
    group_by: GroupBy = GroupBy.MODULE
    _group_index: dict[str, Group] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_group_index", {g.key: g for g in self.groups})

    def get_group(self, key: str) -> Group | None:
        return self._group_index.get(key)

    def child_groups(self, parent: str | None) -> list[Group]:
        """Groups whose parent is ``parent``, in graph order."""
        return [g for g in self.groups if g.parent == parent]

    def nodes_in(self, key: str) -> list[Node]:
        return [n for n in self.nodes if n.group == key]

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}
