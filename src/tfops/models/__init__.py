"""Plan model: change records, configuration tree and expression trees."""

from .expressions import (
    Composite,
    Expression,
    ExpressionVisitor,
    LiteralValue,
    Reference,
    ReferenceCollector,
    collect_references,
    parse_expression,
)
from .plan import (
    ActionType,
    ConfigOutput,
    ConfigResource,
    ConfigurationNode,
    ConfigVariable,
    ModuleCall,
    OutputChange,
    Plan,
    ResourceChange,
    ResourceMode,
    Variable,
    classify_actions,
)

__all__ = [
    "ActionType",
    "Composite",
    "ConfigOutput",
    "ConfigResource",
    "ConfigurationNode",
    "ConfigVariable",
    "Expression",
    "ExpressionVisitor",
    "LiteralValue",
    "ModuleCall",
    "OutputChange",
    "Plan",
    "Reference",
    "ReferenceCollector",
    "ResourceChange",
    "ResourceMode",
    "Variable",
    "classify_actions",
    "collect_references",
    "parse_expression",
]
