"""Attribute expression trees from the plan's static configuration.

Terraform serializes every configuration expression either as a leaf object
carrying ``references`` and/or ``constant_value``, or as a nested block (a
mapping of attribute names to expressions, or a list of such mappings). The
parser below turns that encoding into a small tagged tree that visitors can
walk without knowing the JSON layout.
"""

import logging
from dataclasses import dataclass
from typing import Any, Union

from tfops.errors import MalformedInputError, ResourceLimitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiteralValue:
    """A constant value with no references."""
    value: Any = None


@dataclass(frozen=True)
class Reference:
    """Addresses referenced by a single expression, in declaration order."""
    addresses: tuple[str, ...] = ()


@dataclass(frozen=True)
class Composite:
    """Ordered keyed children of a nested block or list of blocks."""
    children: tuple[tuple[str, "Expression"], ...] = ()


Expression = Union[LiteralValue, Reference, Composite]


def parse_expression(raw: Any, max_depth: int = 64, _depth: int = 0) -> Expression:
    """Build an expression tree from its JSON encoding.

    Args:
        raw: Decoded JSON for one expression (object, list or scalar)
        max_depth: Maximum nesting depth before ResourceLimitError is raised

    Returns:
        The tagged expression tree
    """
    if _depth > max_depth:
        raise ResourceLimitError("max_expression_depth", max_depth, "configuration expression")

    if isinstance(raw, list):
        return Composite(tuple(
            (str(index), parse_expression(item, max_depth, _depth + 1))
            for index, item in enumerate(raw)
        ))

    if not isinstance(raw, dict):
        return LiteralValue(raw)

    if "references" in raw:
        references = raw["references"]
        if not isinstance(references, list) or not all(isinstance(r, str) for r in references):
            raise MalformedInputError("expression 'references' must be a list of strings")
        return Reference(tuple(references))

    if "constant_value" in raw:
        return LiteralValue(raw["constant_value"])

    return Composite(tuple(
        (str(key), parse_expression(value, max_depth, _depth + 1))
        for key, value in raw.items()
    ))


def parse_expressions(raw: Any, max_depth: int = 64) -> dict[str, Expression]:
    """Parse a mapping of attribute name to expression."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise MalformedInputError("'expressions' must be an object")
    return {str(key): parse_expression(value, max_depth, 1) for key, value in raw.items()}


class ExpressionVisitor:
    """Walks an expression tree, dispatching on node type."""

    def visit(self, expression: Expression) -> None:
        if isinstance(expression, Reference):
            self.visit_reference(expression)
        elif isinstance(expression, Composite):
            self.visit_composite(expression)
        elif isinstance(expression, LiteralValue):
            self.visit_literal(expression)

    def visit_literal(self, expression: LiteralValue) -> None:
        pass

    def visit_reference(self, expression: Reference) -> None:
        pass

    def visit_composite(self, expression: Composite) -> None:
        for _, child in expression.children:
            self.visit(child)


class ReferenceCollector(ExpressionVisitor):
    """Collects every referenced address, de-duplicated, in first-seen order."""

    def __init__(self):
        self.references: list[str] = []
        self._seen: set[str] = set()

    def visit_reference(self, expression: Reference) -> None:
        for address in expression.addresses:
            if address not in self._seen:
                self._seen.add(address)
                self.references.append(address)


def collect_references(*expressions: Expression | None) -> list[str]:
    """Return all addresses referenced by the given expressions."""
    collector = ReferenceCollector()
    for expression in expressions:
        if expression is not None:
            collector.visit(expression)
    return collector.references
