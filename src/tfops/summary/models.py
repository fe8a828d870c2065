"""Pydantic models for plan summaries."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PlanInfo(BaseModel):
    """Top-level facts about the plan document."""
    format_version: str
    terraform_version: str = ""
    applicable: bool | None = None
    complete: bool | None = None
    errored: bool | None = None


class Statistics(BaseModel):
    """Change counts broken down several ways."""
    total_changes: int = 0
    by_action: dict[str, int] = Field(default_factory=dict)
    by_provider: dict[str, int] = Field(default_factory=dict)
    by_resource_type: dict[str, int] = Field(default_factory=dict)
    by_module: dict[str, int] = Field(default_factory=dict)


class KeyChange(BaseModel):
    """Before and after value of one changed top-level attribute."""
    from_value: Any = Field(default=None, alias="from")
    to_value: Any = Field(default=None, alias="to")

    model_config = ConfigDict(populate_by_name=True)


class ResourceSummary(BaseModel):
    """One resource change as shown in a summary."""
    address: str
    module_address: str = ""
    type: str
    name: str
    provider: str = ""
    mode: str = "managed"
    actions: list[str] = Field(default_factory=list)
    action: str
    sensitive: bool = False
    key_changes: dict[str, KeyChange] = Field(default_factory=dict)


class ResourceChanges(BaseModel):
    """Resource summaries grouped by classified action."""
    create: list[ResourceSummary] = Field(default_factory=list)
    update: list[ResourceSummary] = Field(default_factory=list)
    replace: list[ResourceSummary] = Field(default_factory=list)
    delete: list[ResourceSummary] = Field(default_factory=list)
    read: list[ResourceSummary] = Field(default_factory=list)
    no_op: list[ResourceSummary] = Field(default_factory=list, alias="no-op")

    model_config = ConfigDict(populate_by_name=True)

    def groups(self) -> list[tuple[str, list[ResourceSummary]]]:
        """Non-empty groups in display order."""
        ordered = [
            ("create", self.create),
            ("update", self.update),
            ("replace", self.replace),
            ("delete", self.delete),
            ("read", self.read),
            ("no-op", self.no_op),
        ]
        return [(action, items) for action, items in ordered if items]

    def all_resources(self) -> list[ResourceSummary]:
        return sorted(
            (item for _, items in self.groups() for item in items),
            key=lambda r: r.address,
        )


class OutputSummary(BaseModel):
    """One output change."""
    name: str
    actions: list[str] = Field(default_factory=list)
    action: str
    sensitive: bool = False
    value: Any = None


class PlanSummary(BaseModel):
    """Complete summary of a plan."""
    plan_info: PlanInfo
    statistics: Statistics
    changes: ResourceChanges
    outputs: list[OutputSummary] = Field(default_factory=list)
