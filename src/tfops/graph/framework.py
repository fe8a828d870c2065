"""Graph rendering framework: the renderer interface shared by all diagram formats."""

import logging
from abc import ABC, abstractmethod

from tfops.config import GraphOptions
from tfops.errors import ConsistencyError

from .models import Graph, Group

logger = logging.getLogger(__name__)


class GraphRenderer(ABC):
    """Abstract base class for graph renderers."""

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Name of the output format."""
        pass

    @abstractmethod
    def generate(self, graph: Graph, options: GraphOptions | None = None) -> str:
        """Render the graph to diagram text."""
        pass

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get file extension for this format."""
        pass

    def check_groups(self, graph: Graph) -> None:
        """Ensure every node and group parent refers to a known group.

        Raises:
            ConsistencyError: If a node's group key is missing from the graph
        """
        for node in graph.nodes:
            if graph.get_group(node.group) is None:
                raise ConsistencyError(
                    f"node {node.address} belongs to unknown group '{node.group}'"
                )
        for group in graph.groups:
            if group.parent is not None and graph.get_group(group.parent) is None:
                raise ConsistencyError(
                    f"group '{group.key}' has unknown parent '{group.parent}'"
                )

    def walk_groups(self, graph: Graph, parent: str | None = None, depth: int = 0):
        """Yield ``(event, group, depth)`` tuples in nesting order.

        ``event`` is ``"open"`` before a group's children and ``"close"`` after them.
        """
        for group in graph.child_groups(parent):
            yield "open", group, depth
            yield from self.walk_groups(graph, group.key, depth + 1)
            yield "close", group, depth

    def members(self, graph: Graph, group: Group) -> list:
        """Nodes of ``group`` in graph order."""
        return graph.nodes_in(group.key)
