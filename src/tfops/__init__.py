"""tfops - Terraform plan visualization and summary CLI.

tfops reads the JSON form of a Terraform plan and renders its resource
dependency graph as Graphviz, Mermaid or PlantUML text, or summarizes the
planned changes for review.
"""

__version__ = "0.1.0"
__author__ = "tfops contributors"
__description__ = "Terraform plan visualization and summary CLI"

from tfops.config import GraphOptions, TfOpsConfig

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "GraphOptions",
    "TfOpsConfig",
]
