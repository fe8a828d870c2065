"""Plan summarizer: statistics and per-action listings of planned changes."""

import logging
from collections import Counter
from typing import Any

from tfops.models.plan import ActionType, Plan, ResourceChange, contains_sensitive

from .models import (
    KeyChange,
    OutputSummary,
    PlanInfo,
    PlanSummary,
    ResourceChanges,
    ResourceSummary,
    Statistics,
)

logger = logging.getLogger(__name__)

SENSITIVE_VALUE = "(sensitive value)"
ROOT_MODULE = "root"


class PlanSummarizer:
    """Builds a :class:`PlanSummary` from a :class:`Plan`."""

    def summarize(self, plan: Plan) -> PlanSummary:
        summary = PlanSummary(
            plan_info=PlanInfo(
                format_version=plan.format_version,
                terraform_version=plan.terraform_version,
                applicable=plan.applicable,
                complete=plan.complete,
                errored=plan.errored,
            ),
            statistics=self._calculate_statistics(plan),
            changes=self._group_resource_changes(plan),
            outputs=self._summarize_outputs(plan),
        )
        logger.debug(f"Summarized {summary.statistics.total_changes} resource changes")
        return summary

    def _calculate_statistics(self, plan: Plan) -> Statistics:
        actions: Counter = Counter()
        providers: Counter = Counter()
        types: Counter = Counter()
        modules: Counter = Counter()

        for change in plan.resource_changes:
            actions[change.action.value] += 1
            providers[change.provider or "unknown"] += 1
            types[change.type] += 1
            modules[change.module_address or ROOT_MODULE] += 1

        return Statistics(
            total_changes=len(plan.resource_changes),
            by_action=dict(sorted(actions.items())),
            by_provider=dict(sorted(providers.items())),
            by_resource_type=dict(sorted(types.items())),
            by_module=dict(sorted(modules.items())),
        )

    def _group_resource_changes(self, plan: Plan) -> ResourceChanges:
        grouped: dict[ActionType, list[ResourceSummary]] = {action: [] for action in ActionType}

        for change in sorted(plan.resource_changes, key=lambda c: c.address):
            grouped[change.action].append(ResourceSummary(
                address=change.address,
                module_address=change.module_address,
                type=change.type,
                name=change.name,
                provider=change.provider,
                mode=change.mode.value,
                actions=list(change.actions),
                action=change.action.value,
                sensitive=change.sensitive,
                key_changes=self._extract_key_changes(change),
            ))

        return ResourceChanges(
            create=grouped[ActionType.CREATE],
            update=grouped[ActionType.UPDATE],
            replace=grouped[ActionType.REPLACE],
            delete=grouped[ActionType.DELETE],
            read=grouped[ActionType.READ],
            no_op=grouped[ActionType.NO_OP],
        )

    def _extract_key_changes(self, change: ResourceChange) -> dict[str, KeyChange]:
        before = change.before if isinstance(change.before, dict) else {}
        after = change.after if isinstance(change.after, dict) else {}

        key_changes = {}
        for key in change.changed_attributes:
            key_changes[key] = KeyChange(
                from_value=self._masked(before.get(key), change.before_sensitive, key),
                to_value=self._masked(after.get(key), change.after_sensitive, key),
            )
        return key_changes

    @staticmethod
    def _masked(value: Any, sensitivity: Any, key: str) -> Any:
        if value is None:
            return None
        if sensitivity is True:
            return SENSITIVE_VALUE
        if isinstance(sensitivity, dict) and contains_sensitive(sensitivity.get(key)):
            return SENSITIVE_VALUE
        return value

    def _summarize_outputs(self, plan: Plan) -> list[OutputSummary]:
        return [
            OutputSummary(
                name=name,
                actions=list(output.actions),
                action=output.action.value,
                sensitive=output.sensitive,
                value=None if output.sensitive else output.value,
            )
            for name, output in sorted(plan.output_changes.items())
        ]


def summarize_plan(plan: Plan) -> PlanSummary:
    return PlanSummarizer().summarize(plan)
