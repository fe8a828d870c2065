"""Mermaid flowchart renderer."""

import logging

from tfops.config import GraphOptions

from .framework import GraphRenderer
from .models import EdgeKind, Graph, Node
from .styles import Shape, group_id, label_lines, style_for

logger = logging.getLogger(__name__)

# Opening and closing brackets per abstract shape
_SHAPES = {
    Shape.BOX: ("[", "]"),
    Shape.DIAMOND: ("{", "}"),
    Shape.INVERTED_HOUSE: ("[/", "\\]"),
    Shape.CYLINDER: ("[(", ")]"),
    Shape.OCTAGON: ("{{", "}}"),
}


class MermaidRenderer(GraphRenderer):
    """Mermaid diagram renderer for plan graphs."""

    @property
    def format_name(self) -> str:
        return "mermaid"

    def get_file_extension(self) -> str:
        return ".mmd"

    def generate(self, graph: Graph, options: GraphOptions | None = None) -> str:
        """Render graph as a Mermaid flowchart."""
        self.check_groups(graph)
        lines = ["flowchart TB"]

        # Subgraphs with their nodes
        for event, group, depth in self.walk_groups(graph):
            indent = "    " * (depth + 1)
            if event == "open":
                lines.append(f'{indent}subgraph {group_id(group.key)}["{self._escape_label(group.label)}"]')
                for node in self.members(graph, group):
                    lines.append(f"{indent}    {self._render_node(node, options)}")
            else:
                lines.append(f"{indent}end")

        # Edges
        for edge in graph.edges:
            arrow = "-.->" if edge.kind == EdgeKind.DATA_FLOW else "-->"
            lines.append(f"    {edge.source} {arrow} {edge.target}")

        lines.extend(self._render_styling(graph))
        return "\n".join(lines) + "\n"

    def _render_node(self, node: Node, options: GraphOptions | None) -> str:
        style = style_for(node.kind, node.action)
        opening, closing = _SHAPES[style.shape]
        label = "<br/>".join(self._escape_label(line) for line in label_lines(node, options))
        return f'{node.id}{opening}"{label}"{closing}'

    def _render_styling(self, graph: Graph) -> list[str]:
        """classDef per used style, then one class line per style."""
        classes: dict[str, list[str]] = {}
        definitions: dict[str, str] = {}
        for node in graph.nodes:
            style = style_for(node.kind, node.action)
            classes.setdefault(style.class_name, []).append(node.id)
            definitions[style.class_name] = f"fill:{style.fill},stroke:{style.stroke},stroke-width:2px"

        lines = []
        for class_name in sorted(classes):
            lines.append(f"    classDef {class_name} {definitions[class_name]}")
        for class_name in sorted(classes):
            lines.append(f"    class {','.join(classes[class_name])} {class_name}")
        return lines

    @staticmethod
    def _escape_label(label: str) -> str:
        """Escape one label line with Mermaid entity codes."""
        if not label:
            return ""

        label = label.replace("#", "#35;")  # First, so later entities stay intact
        label = label.replace('"', "#quot;")
        label = label.replace("<", "#lt;")
        label = label.replace(">", "#gt;")
        label = label.replace("&", "#amp;")
        label = label.replace("\r\n", "\n").replace("\n", "<br/>")
        return label
