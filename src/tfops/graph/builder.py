"""Graph builder: turns a plan into a deterministic, renderer-ready graph."""

import logging
from dataclasses import dataclass

from tfops.config import GraphOptions, GroupBy, LimitsConfig
from tfops.errors import ConsistencyError
from tfops.models.plan import ActionType, Plan

from .models import ROOT_GROUP, Edge, EdgeKind, Graph, Group, Node, NodeKind
from .resolver import DependencyResolver, module_chain
from .styles import sanitize_id

logger = logging.getLogger(__name__)

_DETAILED_ACTIONS = {ActionType.UPDATE, ActionType.REPLACE}
_RESOURCE_KINDS = {NodeKind.RESOURCE, NodeKind.DATA_SOURCE}

UNKNOWN_TYPE_GROUP = "unknown"


@dataclass
class _Candidate:
    address: str
    kind: NodeKind
    action: ActionType
    type: str = ""
    name: str = ""
    module: str = ""
    provider: str = ""
    sensitive: bool = False
    details: tuple[str, ...] = ()


class GraphBuilder:
    """Builds a :class:`Graph` from a :class:`Plan`."""

    def __init__(self, limits: LimitsConfig | None = None):
        self.limits = limits or LimitsConfig()

    def build(self, plan: Plan | None, options: GraphOptions | None = None) -> Graph:
        """Select nodes, classify them, group them and materialize edges.

        Raises:
            ConsistencyError: If no plan is given or two addresses sanitize to the same id
        """
        if plan is None:
            raise ConsistencyError("cannot build a graph without a plan")
        options = options or GraphOptions()

        candidates = self._select_nodes(plan, options)
        nodes = self._create_nodes(candidates, options.group_by)
        ids_by_address = {node.address: node.id for node in nodes}
        kinds_by_address = {node.address: node.kind for node in nodes}

        resolver = DependencyResolver(plan, self.limits)
        edges = self._create_edges(resolver, nodes, ids_by_address, kinds_by_address)
        groups = self._create_groups(nodes, options.group_by)

        graph = Graph(
            nodes=tuple(sorted(nodes, key=lambda n: (n.address, n.group, n.kind.value))),
            edges=tuple(sorted(edges, key=lambda e: (e.source, e.target, e.kind.value))),
            groups=groups,
            group_by=options.group_by,
        )
        logger.info(f"Built graph with {len(graph.nodes)} nodes, {len(graph.edges)} edges and {len(graph.groups)} groups")
        return graph

    def _select_nodes(self, plan: Plan, options: GraphOptions) -> list[_Candidate]:
        candidates = []
        root = plan.configuration

        for change in plan.resource_changes:
            if change.is_data_source and options.no_data_sources:
                continue
            if not change.type or not change.name:
                logger.debug(f"Resource change {change.address} has no type or name; its edges are skipped")
            action = change.action
            candidates.append(_Candidate(
                address=change.address,
                kind=NodeKind.DATA_SOURCE if change.is_data_source else NodeKind.RESOURCE,
                action=action,
                type=change.type,
                name=change.name,
                module=change.module_address,
                provider=change.provider,
                sensitive=change.sensitive,
                details=tuple(change.changed_attributes) if action in _DETAILED_ACTIONS else (),
            ))

        if not options.no_outputs:
            for name in sorted(set(plan.output_changes) | set(root.outputs)):
                output_change = plan.output_changes.get(name)
                declaration = root.outputs.get(name)
                candidates.append(_Candidate(
                    address=f"output.{name}",
                    kind=NodeKind.OUTPUT,
                    action=output_change.action if output_change else ActionType.NO_OP,
                    name=name,
                    sensitive=bool(
                        (output_change and output_change.sensitive)
                        or (declaration and declaration.sensitive)
                    ),
                ))

        if not options.no_variables:
            for name in sorted(set(plan.variables) | set(root.variables)):
                declaration = root.variables.get(name)
                variable = plan.variables.get(name)
                candidates.append(_Candidate(
                    address=f"var.{name}",
                    kind=NodeKind.VARIABLE,
                    action=ActionType.NO_OP,
                    name=name,
                    sensitive=bool(
                        (declaration and declaration.sensitive)
                        or (variable and variable.sensitive)
                    ),
                ))

        if not options.no_locals:
            for name in sorted(root.locals):
                candidates.append(_Candidate(
                    address=f"local.{name}",
                    kind=NodeKind.LOCAL,
                    action=ActionType.NO_OP,
                    name=name,
                ))

        return candidates

    def _create_nodes(self, candidates: list[_Candidate], group_by: GroupBy) -> list[Node]:
        nodes = []
        owners: dict[str, str] = {}
        for candidate in candidates:
            node_id = sanitize_id(candidate.address)
            owner = owners.get(node_id)
            if owner is not None and owner != candidate.address:
                raise ConsistencyError(
                    f"node id {node_id} is shared by {owner} and {candidate.address}"
                )
            if owner is not None:
                logger.debug(f"Skipping duplicate node {candidate.address}")
                continue
            owners[node_id] = candidate.address

            nodes.append(Node(
                id=node_id,
                address=candidate.address,
                label=candidate.address,
                kind=candidate.kind,
                action=candidate.action,
                group=self._group_key(candidate, group_by),
                sensitive=candidate.sensitive,
                type=candidate.type,
                name=candidate.name,
                module=candidate.module,
                provider=candidate.provider,
                details=candidate.details,
            ))
        return nodes

    @staticmethod
    def _group_key(candidate: _Candidate, group_by: GroupBy) -> str:
        if group_by == GroupBy.ACTION:
            return candidate.action.value
        if group_by == GroupBy.RESOURCE_TYPE:
            if candidate.kind in _RESOURCE_KINDS:
                return candidate.type or UNKNOWN_TYPE_GROUP
            return candidate.kind.value
        return candidate.module or ROOT_GROUP

    def _create_edges(self, resolver, nodes, ids_by_address, kinds_by_address) -> set[Edge]:
        edges = set()
        for node in nodes:
            if node.kind in _RESOURCE_KINDS:
                if not node.type or not node.name:
                    continue
                dependencies = resolver.dependencies_of(node.address)
            elif node.kind == NodeKind.OUTPUT:
                dependencies = resolver.output_dependencies(node.name)
            elif node.kind == NodeKind.LOCAL:
                dependencies = resolver.local_dependencies(node.name)
            else:
                continue

            for dependency in dependencies:
                target = ids_by_address.get(dependency)
                if target is None:
                    logger.debug(f"Dropping edge {node.address} -> {dependency}: target not included")
                    continue
                if target == node.id:
                    continue
                both_resources = (
                    node.kind in _RESOURCE_KINDS and kinds_by_address[dependency] in _RESOURCE_KINDS
                )
                kind = EdgeKind.DEPENDENCY if both_resources else EdgeKind.DATA_FLOW
                edges.add(Edge(source=node.id, target=target, kind=kind))
        return edges

    def _create_groups(self, nodes: list[Node], group_by: GroupBy) -> tuple[Group, ...]:
        members: dict[str, list[str]] = {}
        for node in sorted(nodes, key=lambda n: (n.address, n.group, n.kind.value)):
            members.setdefault(node.group, []).append(node.id)

        parents: dict[str, str | None] = {}
        for key in members:
            if group_by != GroupBy.MODULE or key == ROOT_GROUP:
                parents[key] = None
                continue
            # Intermediate modules without resources still get a group so the chain stays intact.
            chain = module_chain(key)
            for position, module_address in enumerate(chain):
                parents.setdefault(module_address, chain[position - 1] if position else None)

        ordered = sorted(parents, key=lambda k: (k != ROOT_GROUP, k))
        return tuple(
            Group(key=key, label=key, parent=parents[key], node_ids=tuple(members.get(key, ())))
            for key in ordered
        )


def build_graph(plan: Plan | None, options: GraphOptions | None = None,
                limits: LimitsConfig | None = None) -> Graph:
    """Build a graph with a fresh :class:`GraphBuilder`."""
    return GraphBuilder(limits).build(plan, options)
