"""Plan-to-diagram pipeline: load, build, render."""

import logging
from pathlib import Path

from tfops.config import GraphOptions, LimitsConfig
from tfops.models.plan import Plan
from tfops.parser.plan_loader import PlanLoader

from .builder import GraphBuilder
from .factory import create_renderer
from .framework import GraphRenderer
from .models import Graph

logger = logging.getLogger(__name__)


class GraphGenerator:
    """Main graph generation entry point.

    The renderer is chosen on construction, so an unsupported format fails
    before any plan file is opened.
    """

    def __init__(self, options: GraphOptions | None = None, limits: LimitsConfig | None = None):
        self.options = options or GraphOptions()
        self.limits = limits or LimitsConfig()
        self.renderer: GraphRenderer = create_renderer(self.options.format)

    def generate_from_file(self, plan_file: str | Path) -> str:
        """Load a plan file and render its graph.

        Args:
            plan_file: Path to ``terraform show -json`` output

        Returns:
            Rendered diagram text
        """
        logger.info(f"Generating {self.options.format.value} graph from {plan_file}")
        plan = PlanLoader(self.limits).load_file(plan_file)
        return self.generate(plan)

    def generate(self, plan: Plan) -> str:
        """Render the graph of an already loaded plan."""
        return self.render_graph(self.build_graph(plan))

    def build_graph(self, plan: Plan) -> Graph:
        return GraphBuilder(self.limits).build(plan, self.options)

    def render_graph(self, graph: Graph) -> str:
        logger.info(f"Rendering graph with {self.renderer.format_name} renderer")
        return self.renderer.generate(graph, self.options)
