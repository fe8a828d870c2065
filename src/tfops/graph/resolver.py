"""Dependency resolution over the plan's configuration tree.

Explicit dependencies come from ``depends_on`` lists; implicit ones from the
references inside attribute expressions. References are resolved against the
plan's known addresses, scope first and then ancestor scopes, chasing through
module variables, module locals and module outputs so that edges cross module
boundaries.
"""

import logging
import re

from tfops.config import LimitsConfig
from tfops.errors import ResourceLimitError
from tfops.models.expressions import collect_references
from tfops.models.plan import ConfigurationNode, ModuleCall, Plan, ResourceChange

logger = logging.getLogger(__name__)

IGNORED_ROOTS = frozenset({"each", "count", "self", "path", "terraform"})

_INSTANCE_KEY = re.compile(r'\[(?:"[^"]*"|[^\]]*)\]')


def strip_instance_keys(address: str) -> str:
    """Remove every ``[key]`` from an address."""
    return _INSTANCE_KEY.sub("", address)


def split_address(address: str) -> list[str]:
    """Split on dots that are not inside an instance key."""
    parts = []
    current = []
    depth = 0
    in_quote = False
    for char in address:
        if in_quote:
            if char == '"':
                in_quote = False
        elif char == '"' and depth:
            in_quote = True
        elif char == "[":
            depth += 1
        elif char == "]" and depth:
            depth -= 1
        elif char == "." and not depth:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def module_chain(module_address: str) -> list[str]:
    """Instance addresses of every enclosing module, outermost first.

    ``module.a[0].module.b`` gives ``["module.a[0]", "module.a[0].module.b"]``.
    """
    if not module_address:
        return []
    segments = split_address(module_address)
    chain = []
    for i in range(0, len(segments) - 1, 2):
        chain.append(".".join(segments[: i + 2]))
    return chain


def _join(prefix: str, address: str) -> str:
    return f"{prefix}.{address}" if prefix else address


def _split_key(segment: str) -> tuple[str, str | None]:
    match = _INSTANCE_KEY.search(segment)
    if match is None:
        return segment, None
    return segment[: match.start()], segment[match.start():]


def _parent_instance(instance: str) -> str:
    chain = module_chain(instance)
    return chain[-2] if len(chain) > 1 else ""


class DependencyResolver:
    """Resolves the dependencies of resources, outputs and locals of one plan."""

    def __init__(self, plan: Plan, limits: LimitsConfig | None = None):
        self.plan = plan
        self.limits = limits or LimitsConfig()

        self._scopes: dict[str, ConfigurationNode] = {}
        self._calls: dict[str, ModuleCall] = {}
        self._index_configuration("", plan.configuration)

        self._changes: dict[str, ResourceChange] = {c.address: c for c in plan.resource_changes}
        self._by_resource: dict[tuple[str, str], list[ResourceChange]] = {}
        for change in plan.resource_changes:
            relative = f"{'data.' if change.is_data_source else ''}{change.type}.{change.name}"
            key = (strip_instance_keys(change.module_address), relative)
            self._by_resource.setdefault(key, []).append(change)

        root = plan.configuration
        self._root_variables = set(plan.variables) | set(root.variables)
        self._root_locals = set(root.locals)

    def _index_configuration(self, scope: str, node: ConfigurationNode) -> None:
        self._scopes[scope] = node
        for name, call in node.module_calls.items():
            child_scope = _join(scope, f"module.{name}")
            self._calls[child_scope] = call
            if call.module is not None:
                self._index_configuration(child_scope, call.module)

    def dependencies_of(self, address: str) -> set[str]:
        """Addresses the resource at ``address`` depends on."""
        change = self._changes.get(address)
        if change is None:
            logger.debug(f"No resource change for {address}")
            return set()

        instance = change.module_address
        visited: set[tuple[str, str]] = set()
        result: set[str] = set()

        scope_node = self._scopes.get(strip_instance_keys(instance))
        config = None
        if scope_node is not None:
            relative = f"{'data.' if change.is_data_source else ''}{change.type}.{change.name}"
            config = scope_node.find_resource(relative)

        explicit = list(change.depends_on)
        if config is not None:
            explicit.extend(config.depends_on)
        for ref in explicit:
            result |= self._resolve(ref, instance, 0, visited, explicit=True)

        if config is not None:
            refs = collect_references(*config.expressions.values(), config.count, config.for_each)
            for ref in refs:
                result |= self._resolve(ref, instance, 0, visited)

        chain = module_chain(instance)
        for position, call_instance in enumerate(chain):
            call = self._calls.get(strip_instance_keys(call_instance))
            if call is None:
                continue
            parent = chain[position - 1] if position else ""
            for ref in call.depends_on:
                result |= self._resolve(ref, parent, 0, visited, explicit=True)
            if call.module is None:
                refs = collect_references(*call.expressions.values(), call.count, call.for_each)
                for ref in refs:
                    result |= self._resolve(ref, parent, 0, visited)

        result.discard(address)
        return result

    def output_dependencies(self, name: str) -> set[str]:
        """Addresses the root output ``name`` depends on."""
        output = self.plan.configuration.outputs.get(name)
        if output is None:
            return set()

        visited: set[tuple[str, str]] = set()
        result: set[str] = set()
        for ref in output.depends_on:
            result |= self._resolve(ref, "", 0, visited, explicit=True)
        for ref in collect_references(output.expression):
            result |= self._resolve(ref, "", 0, visited)
        return result

    def local_dependencies(self, name: str) -> set[str]:
        """Addresses the root local ``name`` depends on."""
        expression = self.plan.configuration.locals.get(name)
        if expression is None:
            return set()

        visited: set[tuple[str, str]] = set()
        result: set[str] = set()
        for ref in collect_references(expression):
            result |= self._resolve(ref, "", 0, visited)
        result.discard(f"local.{name}")
        return result

    def _resolve(
        self,
        ref: str,
        instance: str,
        depth: int,
        visited: set[tuple[str, str]],
        explicit: bool = False,
    ) -> set[str]:
        """Resolve one reference string made from within module ``instance``."""
        if depth > self.limits.max_reference_depth:
            raise ResourceLimitError(
                "max_reference_depth", self.limits.max_reference_depth, f"reference {ref}"
            )

        segments = split_address(ref)
        head = segments[0]

        if head in IGNORED_ROOTS:
            return set()
        if len(segments) < 2:
            logger.debug(f"Dropping unresolvable reference {ref}")
            return set()

        if head == "var":
            return self._resolve_variable(_split_key(segments[1])[0], instance, depth, visited)
        if head == "local":
            return self._resolve_local(_split_key(segments[1])[0], instance, depth, visited)
        if head == "module":
            return self._resolve_module(segments, instance, depth, visited, explicit)
        if head == "data":
            if len(segments) < 3:
                logger.debug(f"Dropping unresolvable reference {ref}")
                return set()
            name, key = _split_key(segments[2])
            return self._resolve_resource(f"data.{segments[1]}.{name}", key, instance, ref)

        name, key = _split_key(segments[1])
        return self._resolve_resource(f"{head}.{name}", key, instance, ref)

    def _resolve_variable(self, name: str, instance: str, depth: int, visited) -> set[str]:
        if not instance:
            if name in self._root_variables:
                return {f"var.{name}"}
            logger.debug(f"Dropping reference to undeclared variable var.{name}")
            return set()

        if (f"var.{name}", instance) in visited:
            return set()
        visited.add((f"var.{name}", instance))

        call = self._calls.get(strip_instance_keys(instance))
        argument = call.expressions.get(name) if call is not None else None
        if argument is None:
            logger.debug(f"No module argument {name} for {instance}")
            return set()

        parent = _parent_instance(instance)
        result: set[str] = set()
        for ref in collect_references(argument):
            result |= self._resolve(ref, parent, depth + 1, visited)
        return result

    def _resolve_local(self, name: str, instance: str, depth: int, visited) -> set[str]:
        if not instance:
            if name in self._root_locals:
                return {f"local.{name}"}
            logger.debug(f"Dropping reference to undeclared local local.{name}")
            return set()

        if (f"local.{name}", instance) in visited:
            return set()
        visited.add((f"local.{name}", instance))

        scope_node = self._scopes.get(strip_instance_keys(instance))
        expression = scope_node.locals.get(name) if scope_node is not None else None
        if expression is None:
            logger.debug(f"No local {name} in {instance}")
            return set()

        result: set[str] = set()
        for ref in collect_references(expression):
            result |= self._resolve(ref, instance, depth + 1, visited)
        return result

    def _resolve_module(self, segments: list[str], instance: str, depth: int, visited, explicit: bool) -> set[str]:
        child = _join(instance, f"module.{segments[1]}")
        child_scope = strip_instance_keys(child)
        call = self._calls.get(child_scope)
        if call is None:
            logger.debug(f"Dropping reference to unknown module {child}")
            return set()

        rest = segments[2:]
        if not rest:
            # A whole-module reference only creates edges when declared in depends_on.
            return self._resources_under(child) if explicit else set()

        if call.module is None:
            return self._resources_under(child)

        output = call.module.outputs.get(_split_key(rest[0])[0])
        if output is not None:
            if (f"output.{output.name}", child) in visited:
                return set()
            visited.add((f"output.{output.name}", child))
            result: set[str] = set()
            for ref in output.depends_on:
                result |= self._resolve(ref, child, depth + 1, visited, explicit=True)
            for ref in collect_references(output.expression):
                result |= self._resolve(ref, child, depth + 1, visited)
            return result

        return self._resolve(".".join(rest), child, depth + 1, visited, explicit)

    def _resolve_resource(self, relative: str, key: str | None, instance: str, ref: str) -> set[str]:
        """Find resource instances for ``relative`` in ``instance`` or its ancestors."""
        current = instance
        while True:
            matches = self._match_resource(relative, key, current)
            if matches:
                return matches
            if not current:
                break
            current = _parent_instance(current)

        logger.debug(f"Dropping reference {ref}: no matching resource in the plan")
        return set()

    def _match_resource(self, relative: str, key: str | None, instance: str) -> set[str]:
        candidates = self._by_resource.get((strip_instance_keys(instance), relative), [])
        matches = set()
        for change in candidates:
            if not _instance_matches(change.module_address, instance):
                continue
            if key is not None and change.address != _join(change.module_address, relative + key):
                continue
            matches.add(change.address)
        return matches

    def _resources_under(self, module_instance: str) -> set[str]:
        """Every resource change inside ``module_instance`` or its descendants."""
        depth = len(module_chain(module_instance))
        result = set()
        for change in self.plan.resource_changes:
            chain = module_chain(change.module_address)
            if len(chain) >= depth and _instance_matches(chain[depth - 1], module_instance):
                result.add(change.address)
        return result


def _instance_matches(actual: str, wanted: str) -> bool:
    """True when module address ``actual`` is an instance of ``wanted``.

    Segments of ``wanted`` without an instance key match any key.
    """
    actual_parts = split_address(actual) if actual else []
    wanted_parts = split_address(wanted) if wanted else []
    if len(actual_parts) != len(wanted_parts):
        return False
    for have, want in zip(actual_parts, wanted_parts):
        if have == want:
            continue
        have_name, _ = _split_key(have)
        want_name, want_key = _split_key(want)
        if have_name != want_name or want_key is not None:
            return False
    return True
