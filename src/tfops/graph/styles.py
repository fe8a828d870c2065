"""Styling table, label composition and identifier sanitization shared by all renderers."""

from dataclasses import dataclass

from tfops.config import GraphOptions
from tfops.models.plan import ActionType

from .models import Node, NodeKind

MAX_DETAIL_LINES = 8
SENSITIVE_MARKER = "(sensitive)"
GROUP_ID_PREFIX = "_grp_"


class Shape:
    """Abstract node shapes, mapped by each renderer to its own grammar."""
    BOX = "box"
    DIAMOND = "diamond"
    INVERTED_HOUSE = "invhouse"
    CYLINDER = "cylinder"
    OCTAGON = "octagon"


@dataclass(frozen=True)
class Style:
    """Visual attributes of one node."""
    shape: str
    fill: str
    stroke: str
    class_name: str


_ACTION_COLORS = {
    ActionType.CREATE: ("#d4edda", "#28a745"),
    ActionType.UPDATE: ("#fff3cd", "#ffc107"),
    ActionType.DELETE: ("#f8d7da", "#dc3545"),
    ActionType.REPLACE: ("#ffe5b4", "#fd7e14"),
    ActionType.NO_OP: ("#e9ecef", "#6c757d"),
    ActionType.READ: ("#d1ecf1", "#17a2b8"),
}

_KIND_COLORS = {
    NodeKind.OUTPUT: ("#cce5ff", "#004085"),
    NodeKind.VARIABLE: ("#e2d9f3", "#6f42c1"),
    NodeKind.LOCAL: ("#fce4ec", "#e83e8c"),
}

_KIND_SHAPES = {
    NodeKind.RESOURCE: Shape.BOX,
    NodeKind.DATA_SOURCE: Shape.DIAMOND,
    NodeKind.OUTPUT: Shape.INVERTED_HOUSE,
    NodeKind.VARIABLE: Shape.CYLINDER,
    NodeKind.LOCAL: Shape.OCTAGON,
}


def style_for(kind: NodeKind, action: ActionType) -> Style:
    """Look up the style of a node.

    Resources and data sources are coloured by action; outputs, variables and
    locals have a fixed colour per kind.
    """
    shape = _KIND_SHAPES[kind]
    if kind in _KIND_COLORS:
        fill, stroke = _KIND_COLORS[kind]
        return Style(shape, fill, stroke, kind.value)

    fill, stroke = _ACTION_COLORS.get(action, _ACTION_COLORS[ActionType.NO_OP])
    class_name = "noop" if action == ActionType.NO_OP else action.value
    return Style(shape, fill, stroke, class_name)


def sanitize_id(address: str) -> str:
    """Map an address onto ``[A-Za-z0-9_]`` without collisions.

    ASCII letters and digits are kept, ``_`` is doubled and every other
    character becomes ``_<hex codepoint>_``. The encoding is prefix-free, so
    distinct addresses always give distinct ids.
    """
    parts = []
    for char in address:
        if char.isascii() and char.isalnum():
            parts.append(char)
        elif char == "_":
            parts.append("__")
        else:
            parts.append(f"_{ord(char):x}_")
    return "".join(parts)


def group_id(key: str) -> str:
    """Identifier of a grouping construct.

    Sanitized node ids never start with ``_g`` (``g`` is not a hex digit), so
    group ids cannot collide with node ids.
    """
    return GROUP_ID_PREFIX + sanitize_id(key)


def label_lines(node: Node, options: GraphOptions | None = None) -> list[str]:
    """Compose the display lines of a node."""
    lines = [node.address, f"[{node.action.value}]"]
    if options is not None and options.compact:
        return lines

    lines.extend(f"~ {detail}" for detail in node.details[:MAX_DETAIL_LINES])
    hidden = len(node.details) - MAX_DETAIL_LINES
    if hidden > 0:
        lines.append(f"... (+{hidden} more)")

    if node.sensitive:
        lines.append(SENSITIVE_MARKER)
    return lines
