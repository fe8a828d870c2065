"""Immutable plan model built by the plan loader."""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any

from .expressions import Expression


class ActionType(str, Enum):
    """Classified action of a change record."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE = "replace"
    NO_OP = "no-op"
    READ = "read"


class ResourceMode(str, Enum):
    """Terraform resource modes."""
    MANAGED = "managed"
    DATA = "data"


_KNOWN_ACTIONS = {a.value for a in ActionType if a is not ActionType.REPLACE}


def classify_actions(actions: tuple[str, ...] | list[str]) -> ActionType:
    """Collapse an action sequence into one :class:`ActionType`.

    Exactly ``delete`` and ``create`` (either order) is a replace; otherwise the
    first declared action wins. Empty sequences and unknown words are no-op.
    """
    if len(actions) == 2 and set(actions) == {"delete", "create"}:
        return ActionType.REPLACE
    if not actions:
        return ActionType.NO_OP
    first = actions[0]
    if first in _KNOWN_ACTIONS:
        return ActionType(first)
    return ActionType.NO_OP


def contains_sensitive(value: Any) -> bool:
    """True when ``true`` appears anywhere inside a sensitivity map."""
    if value is True:
        return True
    if isinstance(value, dict):
        return any(contains_sensitive(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_sensitive(v) for v in value)
    return False


@dataclass(frozen=True)
class ResourceChange:
    """One planned change of a resource or data source instance."""
    address: str
    type: str
    name: str
    mode: ResourceMode = ResourceMode.MANAGED
    module_address: str = ""
    index: Any = None
    provider_name: str = ""
    actions: tuple[str, ...] = ("no-op",)
    before: Any = None
    after: Any = None
    before_sensitive: Any = None
    after_sensitive: Any = None
    depends_on: tuple[str, ...] = ()

    @property
    def action(self) -> ActionType:
        return classify_actions(self.actions)

    @property
    def is_data_source(self) -> bool:
        return self.mode == ResourceMode.DATA

    @property
    def provider(self) -> str:
        """Provider prefix of the resource type (``aws`` for ``aws_instance``)."""
        return self.type.split("_", 1)[0] if self.type else ""

    @property
    def sensitive(self) -> bool:
        return contains_sensitive(self.before_sensitive) or contains_sensitive(self.after_sensitive)

    @property
    def changed_attributes(self) -> list[str]:
        """Sorted top-level attribute names whose value differs between before and after."""
        before = self.before if isinstance(self.before, dict) else {}
        after = self.after if isinstance(self.after, dict) else {}
        return sorted(
            key for key in set(before) | set(after)
            if before.get(key) != after.get(key)
        )

    @property
    def resource_address(self) -> str:
        """Address without the instance key (``aws_instance.web`` for ``aws_instance.web[0]``)."""
        prefix = f"{self.module_address}." if self.module_address else ""
        mode = "data." if self.is_data_source else ""
        return f"{prefix}{mode}{self.type}.{self.name}"


@dataclass(frozen=True)
class OutputChange:
    """A planned change of a root module output."""
    name: str
    actions: tuple[str, ...] = ("no-op",)
    sensitive: bool = False
    value: Any = None

    @property
    def action(self) -> ActionType:
        return classify_actions(self.actions)


@dataclass(frozen=True)
class Variable:
    """An input variable value supplied to the plan."""
    name: str
    value: Any = None
    sensitive: bool = False


@dataclass(frozen=True)
class ConfigResource:
    """A resource block declared in a module's configuration."""
    address: str
    type: str
    name: str
    mode: ResourceMode = ResourceMode.MANAGED
    provider_config_key: str = ""
    expressions: dict[str, Expression] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    count: Expression | None = None
    for_each: Expression | None = None


@dataclass(frozen=True)
class ConfigVariable:
    """A variable declaration."""
    name: str
    default: Any = None
    description: str = ""
    sensitive: bool = False


@dataclass(frozen=True)
class ConfigOutput:
    """An output declaration."""
    name: str
    expression: Expression | None = None
    sensitive: bool = False
    depends_on: tuple[str, ...] = ()


@dataclass(frozen=True)
class ModuleCall:
    """A ``module`` block and the configuration of the module it calls."""
    name: str
    source: str = ""
    expressions: dict[str, Expression] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    count: Expression | None = None
    for_each: Expression | None = None
    module: "ConfigurationNode | None" = None


@dataclass(frozen=True)
class ConfigurationNode:
    """Static configuration of one module, mirroring module nesting."""
    resources: tuple[ConfigResource, ...] = ()
    module_calls: dict[str, ModuleCall] = field(default_factory=dict)
    variables: dict[str, ConfigVariable] = field(default_factory=dict)
    locals: dict[str, Expression] = field(default_factory=dict)
    outputs: dict[str, ConfigOutput] = field(default_factory=dict)

    @cached_property
    def _resources_by_address(self) -> dict[str, ConfigResource]:
        resources: dict[str, ConfigResource] = {}
        for resource in self.resources:
            resources.setdefault(resource.address, resource)
        return resources

    def find_resource(self, address: str) -> ConfigResource | None:
        return self._resources_by_address.get(address)


@dataclass(frozen=True)
class Plan:
    """A parsed Terraform plan document."""
    format_version: str
    terraform_version: str = ""
    resource_changes: tuple[ResourceChange, ...] = ()
    output_changes: dict[str, OutputChange] = field(default_factory=dict)
    variables: dict[str, Variable] = field(default_factory=dict)
    configuration: ConfigurationNode = field(default_factory=ConfigurationNode)
    applicable: bool | None = None
    complete: bool | None = None
    errored: bool | None = None

    @cached_property
    def _changes_by_address(self) -> dict[str, ResourceChange]:
        changes: dict[str, ResourceChange] = {}
        for change in self.resource_changes:
            changes.setdefault(change.address, change)
        return changes

    def get_resource_change(self, address: str) -> ResourceChange | None:
        return self._changes_by_address.get(address)
