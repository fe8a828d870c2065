"""PlantUML renderer."""

import logging

from tfops.config import GraphOptions

from .framework import GraphRenderer
from .models import EdgeKind, Graph, Node
from .styles import Shape, group_id, label_lines, style_for

logger = logging.getLogger(__name__)

_ELEMENTS = {
    Shape.BOX: "rectangle",
    Shape.DIAMOND: "storage",
    Shape.INVERTED_HOUSE: "artifact",
    Shape.CYLINDER: "database",
    Shape.OCTAGON: "card",
}


class PlantUMLRenderer(GraphRenderer):
    """Renders a plan graph as a PlantUML component-style diagram."""

    @property
    def format_name(self) -> str:
        return "plantuml"

    def get_file_extension(self) -> str:
        return ".puml"

    def generate(self, graph: Graph, options: GraphOptions | None = None) -> str:
        self.check_groups(graph)
        lines = [
            "@startuml",
            "skinparam defaultFontName Arial",
            "left to right direction",
            "",
        ]

        for event, group, depth in self.walk_groups(graph):
            indent = "  " * depth
            if event == "open":
                lines.append(f'{indent}package "{self._escape(group.label)}" as {group_id(group.key)} {{')
                for node in self.members(graph, group):
                    lines.append(f"{indent}  {self._render_node(node, options)}")
            else:
                lines.append(f"{indent}}}")

        if graph.edges:
            lines.append("")
            for edge in graph.edges:
                arrow = "..>" if edge.kind == EdgeKind.DATA_FLOW else "-->"
                lines.append(f"{edge.source} {arrow} {edge.target}")

        lines.append("@enduml")
        return "\n".join(lines) + "\n"

    def _render_node(self, node: Node, options: GraphOptions | None) -> str:
        style = style_for(node.kind, node.action)
        label = self._escape("\n".join(label_lines(node, options)))
        return f'{_ELEMENTS[style.shape]} "{label}" as {node.id} {style.fill}'

    @staticmethod
    def _escape(text: str) -> str:
        """Escape text for a PlantUML quoted string."""
        text = text.replace("\\", "\\\\")
        text = text.replace('"', "<U+0022>")
        text = text.replace("\r\n", "\n").replace("\n", "\\n")
        return text
