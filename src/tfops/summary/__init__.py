"""Plan summaries and their output formats."""

from .formatters import (
    JSONFormatter,
    MarkdownFormatter,
    SummaryFormatter,
    TableFormatter,
    TextFormatter,
    create_formatter,
)
from .models import PlanSummary
from .summarizer import PlanSummarizer, summarize_plan

__all__ = [
    "JSONFormatter",
    "MarkdownFormatter",
    "PlanSummarizer",
    "PlanSummary",
    "SummaryFormatter",
    "TableFormatter",
    "TextFormatter",
    "create_formatter",
    "summarize_plan",
]
