"""Renderer factory keyed by output format."""

from tfops.config import GraphFormat, parse_graph_format

from .framework import GraphRenderer
from .graphviz import GraphvizRenderer
from .mermaid import MermaidRenderer
from .plantuml import PlantUMLRenderer

_RENDERERS: dict[GraphFormat, type[GraphRenderer]] = {
    GraphFormat.GRAPHVIZ: GraphvizRenderer,
    GraphFormat.MERMAID: MermaidRenderer,
    GraphFormat.PLANTUML: PlantUMLRenderer,
}


def create_renderer(format_name: GraphFormat | str) -> GraphRenderer:
    """Return a renderer for ``format_name``.

    Raises:
        UnsupportedFormatError: If the format is not graphviz, mermaid or plantuml
    """
    return _RENDERERS[parse_graph_format(format_name)]()


def supported_formats() -> list[str]:
    return [f.value for f in _RENDERERS]
