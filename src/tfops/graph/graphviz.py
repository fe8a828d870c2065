"""Graphviz DOT renderer."""

import logging

from tfops.config import GraphOptions

from .framework import GraphRenderer
from .models import EdgeKind, Graph, Node
from .styles import Shape, group_id, label_lines, style_for

logger = logging.getLogger(__name__)

_SHAPES = {
    Shape.BOX: "box",
    Shape.DIAMOND: "diamond",
    Shape.INVERTED_HOUSE: "invhouse",
    Shape.CYLINDER: "cylinder",
    Shape.OCTAGON: "octagon",
}


class GraphvizRenderer(GraphRenderer):
    """Renders a plan graph as a DOT digraph with nested clusters."""

    @property
    def format_name(self) -> str:
        return "graphviz"

    def get_file_extension(self) -> str:
        return ".dot"

    def generate(self, graph: Graph, options: GraphOptions | None = None) -> str:
        """Render graph as a DOT digraph."""
        self.check_groups(graph)
        lines = []

        # Header
        lines.append("digraph terraform_plan {")
        lines.append("  rankdir=LR;")
        lines.append('  node [style=filled, fontname="Arial"];')
        lines.append('  edge [fontname="Arial"];')
        lines.append("")

        # Groups with their nodes
        for event, group, depth in self.walk_groups(graph):
            indent = "  " * (depth + 1)
            if event == "open":
                lines.append(f'{indent}subgraph "cluster_{group_id(group.key)}" {{')
                lines.append(f'{indent}  label="{self._escape(group.label)}";')
                lines.append(f"{indent}  style=rounded;")
                lines.append(f"{indent}  color=lightgrey;")
                for node in self.members(graph, group):
                    lines.append(f"{indent}  {self._render_node(node, options)}")
            else:
                lines.append(f"{indent}}}")

        # Edges
        if graph.edges:
            lines.append("")
            for edge in graph.edges:
                style = " [style=dashed]" if edge.kind == EdgeKind.DATA_FLOW else ""
                lines.append(f'  "{edge.source}" -> "{edge.target}"{style};')

        lines.append("}")
        return "\n".join(lines) + "\n"

    def _render_node(self, node: Node, options: GraphOptions | None) -> str:
        style = style_for(node.kind, node.action)
        label = self._escape("\n".join(label_lines(node, options)))
        return (
            f'"{node.id}" [label="{label}", shape={_SHAPES[style.shape]}, '
            f'fillcolor="{style.fill}", color="{style.stroke}"];'
        )

    @staticmethod
    def _escape(text: str) -> str:
        """Escape text for a DOT quoted string."""
        text = text.replace("\\", "\\\\")
        text = text.replace('"', '\\"')
        text = text.replace("\r\n", "\n").replace("\n", "\\n")
        return text
