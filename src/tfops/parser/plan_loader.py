"""Loader turning Terraform plan JSON into the immutable plan model."""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from tfops.config import LimitsConfig
from tfops.errors import (
    MalformedInputError,
    MissingFieldError,
    ResourceLimitError,
    SchemaVersionError,
)
from tfops.models.expressions import Expression, parse_expression, parse_expressions
from tfops.models.plan import (
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
    contains_sensitive,
)

logger = logging.getLogger(__name__)

SUPPORTED_MAJOR_VERSION = "1"


class PlanLoader:
    """Parses ``terraform show -json`` output into a :class:`Plan`.

    The loader never mutates its input; every call returns a new plan.
    """

    def __init__(self, limits: LimitsConfig | None = None):
        self.limits = limits or LimitsConfig()

    def load_file(self, path: str | Path) -> Plan:
        """Read and parse a plan file.

        Raises:
            MalformedInputError: If the file cannot be read or is not a valid plan
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise MalformedInputError(f"failed to read plan file {path}: {e.strerror or e}") from e

        logger.debug(f"Read {len(data)} bytes from {path}")
        return self.load_bytes(data)

    def load_bytes(self, data: bytes | str) -> Plan:
        """Parse plan JSON held in memory."""
        try:
            document = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedInputError(f"failed to parse plan JSON: {e}") from e
        except RecursionError as e:
            raise ResourceLimitError(
                "max_json_depth", sys.getrecursionlimit(), "plan JSON"
            ) from e

        if not isinstance(document, dict):
            raise MalformedInputError("plan document must be a JSON object")

        return self._parse_document(document)

    def _parse_document(self, document: dict[str, Any]) -> Plan:
        if "format_version" not in document or document["format_version"] in (None, ""):
            raise MissingFieldError("format_version")

        format_version = document["format_version"]
        if not isinstance(format_version, str):
            raise MalformedInputError("'format_version' must be a string")
        self._check_version(format_version)

        resource_changes = self._parse_resource_changes(document.get("resource_changes"))
        configuration = self._parse_configuration(document.get("configuration"))
        output_changes = self._parse_output_changes(document.get("output_changes"))
        variables = self._parse_variables(document.get("variables"), configuration)

        logger.debug(
            f"Parsed plan {format_version}: {len(resource_changes)} resource changes, "
            f"{len(output_changes)} output changes, {len(variables)} variables"
        )

        return Plan(
            format_version=format_version,
            terraform_version=_optional_str(document.get("terraform_version"), "terraform_version"),
            resource_changes=resource_changes,
            output_changes=output_changes,
            variables=variables,
            configuration=configuration,
            applicable=_optional_bool(document.get("applicable"), "applicable"),
            complete=_optional_bool(document.get("complete"), "complete"),
            errored=_optional_bool(document.get("errored"), "errored"),
        )

    def _check_version(self, version: str) -> None:
        major = version.split(".", 1)[0].strip()
        if major != SUPPORTED_MAJOR_VERSION:
            raise SchemaVersionError(version, SUPPORTED_MAJOR_VERSION)

    def _parse_resource_changes(self, raw: Any) -> tuple[ResourceChange, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise MalformedInputError("'resource_changes' must be a list")

        changes = []
        seen: set[str] = set()
        for position, entry in enumerate(raw):
            change = self._parse_resource_change(entry, position)
            if change.address in seen:
                logger.debug(f"Skipping duplicate resource change {change.address}")
                continue
            seen.add(change.address)
            changes.append(change)
        return tuple(changes)

    def _parse_resource_change(self, entry: Any, position: int) -> ResourceChange:
        if not isinstance(entry, dict):
            raise MalformedInputError(f"resource_changes[{position}] must be an object")

        address = entry.get("address")
        if not isinstance(address, str) or not address:
            raise MalformedInputError(f"resource_changes[{position}] has no string 'address'")

        change = entry.get("change") or {}
        if not isinstance(change, dict):
            raise MalformedInputError(f"'change' of {address} must be an object")

        mode_raw = entry.get("mode", "managed")
        try:
            mode = ResourceMode(mode_raw)
        except ValueError:
            raise MalformedInputError(f"unknown mode '{mode_raw}' for {address}") from None

        return ResourceChange(
            address=address,
            type=_optional_str(entry.get("type"), f"type of {address}"),
            name=_optional_str(entry.get("name"), f"name of {address}"),
            mode=mode,
            module_address=_optional_str(entry.get("module_address"), f"module_address of {address}"),
            index=entry.get("index"),
            provider_name=_optional_str(entry.get("provider_name"), f"provider_name of {address}"),
            actions=_parse_actions(change.get("actions"), address),
            before=change.get("before"),
            after=change.get("after"),
            before_sensitive=change.get("before_sensitive"),
            after_sensitive=change.get("after_sensitive"),
            depends_on=_string_tuple(entry.get("depends_on"), f"depends_on of {address}"),
        )

    def _parse_output_changes(self, raw: Any) -> dict[str, OutputChange]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise MalformedInputError("'output_changes' must be an object")

        outputs = {}
        for name in sorted(raw):
            entry = raw[name]
            if not isinstance(entry, dict):
                raise MalformedInputError(f"output change '{name}' must be an object")
            change = entry.get("change", entry)
            if not isinstance(change, dict):
                raise MalformedInputError(f"'change' of output '{name}' must be an object")
            sensitive = (
                contains_sensitive(change.get("after_sensitive"))
                or contains_sensitive(change.get("before_sensitive"))
                or entry.get("sensitive") is True
            )
            outputs[name] = OutputChange(
                name=name,
                actions=_parse_actions(change.get("actions"), f"output.{name}"),
                sensitive=sensitive,
                value=None if sensitive else change.get("after"),
            )
        return outputs

    def _parse_variables(self, raw: Any, configuration: ConfigurationNode) -> dict[str, Variable]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise MalformedInputError("'variables' must be an object")

        variables = {}
        for name in sorted(raw):
            entry = raw[name]
            declaration = configuration.variables.get(name)
            sensitive = declaration.sensitive if declaration else False
            value = entry.get("value") if isinstance(entry, dict) else entry
            variables[name] = Variable(
                name=name,
                value=None if sensitive else value,
                sensitive=sensitive,
            )
        return variables

    def _parse_configuration(self, raw: Any) -> ConfigurationNode:
        if raw is None:
            return ConfigurationNode()
        if not isinstance(raw, dict):
            raise MalformedInputError("'configuration' must be an object")
        return self._parse_module(raw.get("root_module"), "root_module", depth=0)

    def _parse_module(self, raw: Any, where: str, depth: int) -> ConfigurationNode:
        if depth > self.limits.max_module_depth:
            raise ResourceLimitError("max_module_depth", self.limits.max_module_depth, where)
        if raw is None:
            return ConfigurationNode()
        if not isinstance(raw, dict):
            raise MalformedInputError(f"'{where}' must be an object")

        resources = tuple(
            self._parse_config_resource(entry, f"{where}.resources[{i}]")
            for i, entry in enumerate(_list(raw.get("resources"), f"{where}.resources"))
        )

        module_calls = {}
        for name, entry in sorted(_dict(raw.get("module_calls"), f"{where}.module_calls").items()):
            module_calls[name] = self._parse_module_call(name, entry, f"{where}.module_calls.{name}", depth)

        variables = {}
        for name, entry in sorted(_dict(raw.get("variables"), f"{where}.variables").items()):
            entry = entry if isinstance(entry, dict) else {}
            variables[name] = ConfigVariable(
                name=name,
                default=entry.get("default"),
                description=entry.get("description") or "",
                sensitive=entry.get("sensitive") is True,
            )

        locals_ = {}
        for name, entry in sorted(_dict(raw.get("locals"), f"{where}.locals").items()):
            if isinstance(entry, dict) and "expression" in entry:
                entry = entry["expression"]
            locals_[name] = self._expression(entry)

        outputs = {}
        for name, entry in sorted(_dict(raw.get("outputs"), f"{where}.outputs").items()):
            entry = entry if isinstance(entry, dict) else {}
            outputs[name] = ConfigOutput(
                name=name,
                expression=self._optional_expression(entry.get("expression")),
                sensitive=entry.get("sensitive") is True,
                depends_on=_string_tuple(entry.get("depends_on"), f"depends_on of output '{name}'"),
            )

        return ConfigurationNode(
            resources=resources,
            module_calls=module_calls,
            variables=variables,
            locals=locals_,
            outputs=outputs,
        )

    def _parse_config_resource(self, entry: Any, where: str) -> ConfigResource:
        if not isinstance(entry, dict):
            raise MalformedInputError(f"'{where}' must be an object")
        address = entry.get("address")
        if not isinstance(address, str) or not address:
            raise MalformedInputError(f"'{where}' has no string 'address'")

        mode_raw = entry.get("mode", "managed")
        try:
            mode = ResourceMode(mode_raw)
        except ValueError:
            raise MalformedInputError(f"unknown mode '{mode_raw}' for {address}") from None

        return ConfigResource(
            address=address,
            type=_optional_str(entry.get("type"), f"type of {address}"),
            name=_optional_str(entry.get("name"), f"name of {address}"),
            mode=mode,
            provider_config_key=_optional_str(entry.get("provider_config_key"), f"provider_config_key of {address}"),
            expressions=parse_expressions(entry.get("expressions"), self.limits.max_expression_depth),
            depends_on=_string_tuple(entry.get("depends_on"), f"depends_on of {address}"),
            count=self._optional_expression(entry.get("count_expression")),
            for_each=self._optional_expression(entry.get("for_each_expression")),
        )

    def _parse_module_call(self, name: str, entry: Any, where: str, depth: int) -> ModuleCall:
        if not isinstance(entry, dict):
            raise MalformedInputError(f"'{where}' must be an object")

        child = entry.get("module")
        return ModuleCall(
            name=name,
            source=_optional_str(entry.get("source"), f"source of module '{name}'"),
            expressions=parse_expressions(entry.get("expressions"), self.limits.max_expression_depth),
            depends_on=_string_tuple(entry.get("depends_on"), f"depends_on of module '{name}'"),
            count=self._optional_expression(entry.get("count_expression")),
            for_each=self._optional_expression(entry.get("for_each_expression")),
            module=self._parse_module(child, f"{where}.module", depth + 1) if child is not None else None,
        )

    def _expression(self, raw: Any) -> Expression:
        return parse_expression(raw, self.limits.max_expression_depth, 1)

    def _optional_expression(self, raw: Any) -> Expression | None:
        if raw is None:
            return None
        return self._expression(raw)


def load_plan(path: str | Path, limits: LimitsConfig | None = None) -> Plan:
    """Convenience wrapper around :meth:`PlanLoader.load_file`."""
    return PlanLoader(limits).load_file(path)


def _parse_actions(raw: Any, owner: str) -> tuple[str, ...]:
    if raw is None:
        return ("no-op",)
    actions = _string_tuple(raw, f"actions of {owner}")
    return actions or ("no-op",)


def _string_tuple(raw: Any, what: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise MalformedInputError(f"{what} must be a list of strings")
    return tuple(raw)


def _optional_str(raw: Any, what: str) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise MalformedInputError(f"{what} must be a string")
    return raw


def _optional_bool(raw: Any, what: str) -> bool | None:
    if raw is None:
        return None
    if not isinstance(raw, bool):
        raise MalformedInputError(f"'{what}' must be a boolean")
    return raw


def _list(raw: Any, what: str) -> list:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise MalformedInputError(f"'{what}' must be a list")
    return raw


def _dict(raw: Any, what: str) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise MalformedInputError(f"'{what}' must be an object")
    return raw
