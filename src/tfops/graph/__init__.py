"""Graph visualization module for tfops.

Builds a dependency graph from a Terraform plan and renders it as Graphviz
DOT, Mermaid or PlantUML text.
"""

from .builder import GraphBuilder, build_graph
from .factory import create_renderer, supported_formats
from .framework import GraphRenderer
from .generator import GraphGenerator
from .graphviz import GraphvizRenderer
from .mermaid import MermaidRenderer
from .models import Edge, EdgeKind, Graph, Group, Node, NodeKind
from .plantuml import PlantUMLRenderer
from .resolver import DependencyResolver

__all__ = [
    "DependencyResolver",
    "Edge",
    "EdgeKind",
    "Graph",
    "GraphBuilder",
    "GraphGenerator",
    "GraphRenderer",
    "GraphvizRenderer",
    "Group",
    "MermaidRenderer",
    "Node",
    "NodeKind",
    "PlantUMLRenderer",
    "build_graph",
    "create_renderer",
    "supported_formats",
]
