"""Formatters rendering a :class:`PlanSummary` as text, JSON, Markdown or a table."""

import io
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from rich.console import Console
from rich.table import Table

from tfops.config import SummaryFormat, parse_summary_format

from .models import KeyChange, PlanInfo, PlanSummary, ResourceSummary, Statistics

logger = logging.getLogger(__name__)

_ACTION_SYMBOLS = {
    "create": "+",
    "update": "~",
    "replace": "-/+",
    "delete": "-",
    "read": "<=",
    "no-op": " ",
}

_ACTION_DESCRIPTIONS = {
    "create": "will be created",
    "update": "will be updated in-place",
    "replace": "must be replaced",
    "delete": "will be destroyed",
    "read": "will be read during apply",
    "no-op": "will be unchanged",
}

_ACTION_TITLES = {
    "create": "Create",
    "update": "Update",
    "replace": "Replace",
    "delete": "Delete",
    "read": "Read",
    "no-op": "No-op",
}


def _render_value(value: Any) -> str:
    """Compact single-line rendering of an attribute value."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def _module_label(module: str) -> str:
    return "Root Module" if module == "root" else module


class SummaryFormatter(ABC):
    """Abstract base class for summary formatters."""

    @property
    @abstractmethod
    def format_name(self) -> str:
        pass

    @abstractmethod
    def format(self, summary: PlanSummary, show_details: bool = False) -> str:
        """Render the summary."""
        pass


class TextFormatter(SummaryFormatter):
    """Plain text in the style of ``terraform plan`` output."""

    @property
    def format_name(self) -> str:
        return "text"

    def format(self, summary: PlanSummary, show_details: bool = False) -> str:
        lines = [
            "Resource actions are indicated with the following symbols:",
            "  + create",
            "  ~ update in-place",
            "  - destroy",
            "-/+ destroy and then create replacement",
            " <= read (data resources)",
            "",
        ]

        resources = summary.changes.all_resources()
        if not resources:
            lines.append("No changes. Your infrastructure matches the configuration.")
            lines.append("")
        else:
            lines.append("Terraform will perform the following actions:")
            lines.append("")
            for resource in resources:
                lines.extend(self._format_resource(resource, show_details))
                lines.append("")

        lines.append(self._plan_line(summary.statistics))

        if summary.outputs:
            lines.append("")
            lines.append("Changes to Outputs:")
            for output in summary.outputs:
                symbol = _ACTION_SYMBOLS.get(output.action, "~")
                value = "(sensitive value)" if output.sensitive else _render_value(output.value)
                lines.append(f"  {symbol} {output.name} = {value}")

        return "\n".join(lines) + "\n"

    def _format_resource(self, resource: ResourceSummary, show_details: bool) -> list[str]:
        symbol = _ACTION_SYMBOLS.get(resource.action, "~")
        block = "data" if resource.mode == "data" else "resource"
        lines = [
            f"  # {resource.address} {_ACTION_DESCRIPTIONS.get(resource.action, 'will be modified')}",
            f'{symbol:>3} {block} "{resource.type}" "{resource.name}" {{',
        ]
        if show_details and resource.key_changes:
            for key, change in sorted(resource.key_changes.items()):
                lines.append(self._format_key_change(key, change))
        elif resource.sensitive:
            lines.append("      # (sensitive value)")
        lines.append("    }")
        return lines

    @staticmethod
    def _format_key_change(key: str, change: KeyChange) -> str:
        if change.from_value is None:
            return f"      + {key} = {_render_value(change.to_value)}"
        if change.to_value is None:
            return f"      - {key} = {_render_value(change.from_value)}"
        return f"      ~ {key} = {_render_value(change.from_value)} -> {_render_value(change.to_value)}"

    @staticmethod
    def _plan_line(stats: Statistics) -> str:
        counts = stats.by_action
        add = counts.get("create", 0) + counts.get("replace", 0)
        change = counts.get("update", 0)
        destroy = counts.get("delete", 0) + counts.get("replace", 0)
        return f"Plan: {add} to add, {change} to change, {destroy} to destroy."


class JSONFormatter(SummaryFormatter):
    """Pretty-printed JSON of the full summary model."""

    @property
    def format_name(self) -> str:
        return "json"

    def format(self, summary: PlanSummary, show_details: bool = False) -> str:
        exclude = None
        if not show_details:
            exclude = {"changes": {group: {"__all__": {"key_changes"}} for group in
                                   ("create", "update", "replace", "delete", "read", "no_op")}}
        return summary.model_dump_json(by_alias=True, indent=2, exclude=exclude) + "\n"


class MarkdownFormatter(SummaryFormatter):
    """GitHub-flavoured Markdown suitable for pull request comments."""

    @property
    def format_name(self) -> str:
        return "markdown"

    def format(self, summary: PlanSummary, show_details: bool = False) -> str:
        lines = []
        lines.extend(self._header(summary.plan_info))
        lines.extend(self._statistics(summary.statistics))

        lines.append("## Resource Changes")
        lines.append("")
        groups = summary.changes.groups()
        if not groups:
            lines.append("No changes.")
            lines.append("")
        for action, resources in groups:
            lines.append(f"### {_ACTION_TITLES[action]} ({len(resources)})")
            lines.append("")
            for resource in resources:
                lines.append(f"- **{resource.address}**")
                if resource.sensitive:
                    lines.append("  - Contains sensitive values")
                if show_details and resource.key_changes:
                    lines.append("  - **Changes:**")
                    for key, change in sorted(resource.key_changes.items()):
                        lines.append(
                            f"    - `{key}`: `{_render_value(change.from_value)}` -> "
                            f"`{_render_value(change.to_value)}`"
                        )
            lines.append("")

        if summary.outputs:
            lines.append("## Output Changes")
            lines.append("")
            for output in summary.outputs:
                lines.append(f"- **{output.name}** ({output.action})")
                if output.sensitive:
                    lines.append("  - Sensitive value")
                elif output.value is not None:
                    lines.append(f"  - **Value:** `{_render_value(output.value)}`")
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def _header(info: PlanInfo) -> list[str]:
        if info.errored:
            status = "Errored"
        elif info.applicable is False:
            status = "Not Applicable"
        else:
            status = "Applicable"
        lines = [
            "# Terraform Plan Summary",
            "",
            f"**Plan Status:** {status}  ",
            f"**Format Version:** {info.format_version}  ",
        ]
        if info.terraform_version:
            lines.append(f"**Terraform Version:** {info.terraform_version}  ")
        if info.complete is not None:
            lines.append(f"**Complete:** {str(info.complete).lower()}  ")
        lines.append("")
        return lines

    @staticmethod
    def _statistics(stats: Statistics) -> list[str]:
        lines = ["## Statistics", "", f"**Total Changes:** {stats.total_changes}", ""]
        sections = [
            ("By Action", stats.by_action),
            ("By Provider", stats.by_provider),
            ("By Resource Type", stats.by_resource_type),
            ("By Module", {_module_label(k): v for k, v in stats.by_module.items()}),
        ]
        for title, counts in sections:
            if not counts:
                continue
            lines.append(f"### {title}")
            lines.append("")
            for key, count in counts.items():
                lines.append(f"- **{key}:** {count}")
            lines.append("")
        return lines


class TableFormatter(SummaryFormatter):
    """Rich tables rendered to plain text."""

    def __init__(self, width: int = 120):
        self.width = width

    @property
    def format_name(self) -> str:
        return "table"

    def format(self, summary: PlanSummary, show_details: bool = False) -> str:
        buffer = io.StringIO()
        console = Console(file=buffer, width=self.width, color_system=None, force_terminal=False)

        stats = summary.statistics
        for title, column, counts in [
            ("Action Breakdown", "Action", stats.by_action),
            ("Provider Breakdown", "Provider", stats.by_provider),
            ("Module Breakdown", "Module", {_module_label(k): v for k, v in stats.by_module.items()}),
        ]:
            if not counts:
                continue
            table = Table(title=title)
            table.add_column(column, style="cyan")
            table.add_column("Count", justify="right")
            for key, count in counts.items():
                table.add_row(key, str(count))
            console.print(table)

        for action, resources in summary.changes.groups():
            table = Table(title=f"{_ACTION_TITLES[action]} ({len(resources)})")
            table.add_column("Address", style="cyan", no_wrap=True)
            table.add_column("Type")
            table.add_column("Provider")
            table.add_column("Module")
            table.add_column("Sensitive")
            if show_details:
                table.add_column("Changed Attributes")
            for resource in resources:
                row = [
                    resource.address,
                    resource.type,
                    resource.provider,
                    resource.module_address or "root",
                    "Yes" if resource.sensitive else "No",
                ]
                if show_details:
                    row.append(", ".join(sorted(resource.key_changes)))
                table.add_row(*row)
            console.print(table)

        if summary.outputs:
            table = Table(title="Output Changes")
            table.add_column("Name", style="cyan")
            table.add_column("Actions")
            table.add_column("Sensitive")
            table.add_column("Value")
            for output in summary.outputs:
                value = "(sensitive value)" if output.sensitive else _render_value(output.value)
                table.add_row(
                    output.name,
                    ", ".join(output.actions),
                    "Yes" if output.sensitive else "No",
                    value,
                )
            console.print(table)

        if not summary.changes.groups():
            console.print("No changes.")

        return buffer.getvalue()


_FORMATTERS: dict[SummaryFormat, type[SummaryFormatter]] = {
    SummaryFormat.TEXT: TextFormatter,
    SummaryFormat.JSON: JSONFormatter,
    SummaryFormat.MARKDOWN: MarkdownFormatter,
    SummaryFormat.TABLE: TableFormatter,
}


def create_formatter(format_name: SummaryFormat | str) -> SummaryFormatter:
    """Return the formatter for ``format_name``.

    Raises:
        UnsupportedFormatError: If the format is not text, json, markdown or table
    """
    return _FORMATTERS[parse_summary_format(format_name)]()
