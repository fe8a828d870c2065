"""Unit tests for the graph builder."""

import pytest

from tfops.config import GraphOptions, GroupBy
from tfops.errors import ConsistencyError
from tfops.graph import EdgeKind, GraphBuilder, NodeKind, build_graph
from tfops.graph.styles import sanitize_id
from tfops.models import ActionType, Plan


def edge_addresses(graph):
    by_id = {n.id: n.address for n in graph.nodes}
    return {(by_id[e.source], by_id[e.target], e.kind) for e in graph.edges}


class TestScenarioGraph:
    """Test the three-resource, two-module scenario."""

    def test_nodes_edges_groups(self, scenario_plan):
        """3 nodes, 2 edges pointing at dependencies, 2 module groups."""
        graph = build_graph(scenario_plan)

        assert [n.address for n in graph.nodes] == [
            "aws_instance.web",
            "aws_security_group.web",
            "module.database.aws_instance.db",
        ]
        assert edge_addresses(graph) == {
            ("aws_instance.web", "aws_security_group.web", EdgeKind.DEPENDENCY),
            ("module.database.aws_instance.db", "aws_instance.web", EdgeKind.DEPENDENCY),
        }
        assert [g.key for g in graph.groups] == ["root", "module.database"]
        assert graph.group_by == GroupBy.MODULE

    def test_module_groups_partition_nodes(self, scenario_plan):
        """Nodes sharing a module share a group; different modules never do."""
        graph = build_graph(scenario_plan)
        root = graph.get_group("root")
        database = graph.get_group("module.database")

        assert set(root.node_ids) == {sanitize_id("aws_instance.web"), sanitize_id("aws_security_group.web")}
        assert database.node_ids == (sanitize_id("module.database.aws_instance.db"),)
        assert root.parent is None
        assert database.parent is None

    def test_exclusion_flags_on_resource_only_plan(self, scenario_plan):
        """Exclusion flags change nothing when there is nothing to exclude."""
        default = build_graph(scenario_plan)
        excluded = build_graph(scenario_plan, GraphOptions(
            no_data_sources=True, no_outputs=True, no_variables=True, no_locals=True,
        ))
        assert default == excluded

    def test_deterministic(self, scenario_plan):
        """Building twice yields equal graphs."""
        assert build_graph(scenario_plan) == build_graph(scenario_plan)


class TestExplicitScenarioGraph:
    """Test the scenario wired through depends_on on the change records."""

    def test_nodes_edges_groups(self, explicit_scenario_plan):
        """Record-level dependency lists produce the same graph as references."""
        graph = build_graph(explicit_scenario_plan)

        assert len(graph.nodes) == 3
        assert edge_addresses(graph) == {
            ("aws_instance.web", "aws_security_group.web", EdgeKind.DEPENDENCY),
            ("module.database.aws_instance.db", "aws_instance.web", EdgeKind.DEPENDENCY),
        }
        assert [g.key for g in graph.groups] == ["root", "module.database"]

    def test_matches_reference_scenario(self, explicit_scenario_plan, scenario_plan):
        assert build_graph(explicit_scenario_plan).edges == build_graph(scenario_plan).edges


class TestFullGraph:
    """Test node selection, classification and edges across all node kinds."""

    def test_node_kinds_and_actions(self, full_plan):
        """Every node kind is present with its classified action."""
        graph = build_graph(full_plan)
        nodes = {n.address: n for n in graph.nodes}

        assert len(graph.nodes) == 10
        assert nodes["data.aws_ami.ubuntu"].kind == NodeKind.DATA_SOURCE
        assert nodes["data.aws_ami.ubuntu"].action == ActionType.READ
        assert nodes["aws_db_instance.main"].action == ActionType.REPLACE
        assert nodes["aws_s3_bucket.old"].action == ActionType.DELETE
        assert nodes["output.instance_ip"].kind == NodeKind.OUTPUT
        assert nodes["var.region"].kind == NodeKind.VARIABLE
        assert nodes["local.name_prefix"].kind == NodeKind.LOCAL

    def test_details_and_sensitivity(self, full_plan):
        """Updates list changed attributes; sensitivity is carried over."""
        nodes = {n.address: n for n in build_graph(full_plan).nodes}

        assert nodes["aws_instance.app"].details == ("ami", "instance_type")
        assert nodes["aws_db_instance.main"].details == ("password",)
        assert nodes["aws_db_instance.main"].sensitive is True
        assert nodes["module.app.module.db.aws_s3_bucket.logs"].details == ()
        assert nodes["output.db_password"].sensitive is True
        assert nodes["var.db_password"].sensitive is True
        assert nodes["var.region"].sensitive is False

    def test_edges_and_kinds(self, full_plan):
        """Edges between resources are dependencies, the rest data-flow."""
        assert edge_addresses(build_graph(full_plan)) == {
            ("aws_instance.app", "data.aws_ami.ubuntu", EdgeKind.DEPENDENCY),
            ("aws_instance.app", "local.name_prefix", EdgeKind.DATA_FLOW),
            ("aws_db_instance.main", "aws_instance.app", EdgeKind.DEPENDENCY),
            ("aws_db_instance.main", "var.db_password", EdgeKind.DATA_FLOW),
            ("module.app.module.db.aws_s3_bucket.logs", "local.name_prefix", EdgeKind.DATA_FLOW),
            ("output.instance_ip", "aws_instance.app", EdgeKind.DATA_FLOW),
            ("output.db_password", "aws_db_instance.main", EdgeKind.DATA_FLOW),
            ("local.name_prefix", "var.region", EdgeKind.DATA_FLOW),
        }

    def test_every_edge_endpoint_is_a_node(self, full_plan):
        """No edge dangles, whatever is excluded."""
        for options in [
            GraphOptions(),
            GraphOptions(no_data_sources=True),
            GraphOptions(no_locals=True, no_variables=True),
            GraphOptions(no_outputs=True),
        ]:
            graph = build_graph(full_plan, options)
            ids = graph.node_ids()
            assert all(e.source in ids and e.target in ids for e in graph.edges)

    def test_no_data_sources(self, full_plan):
        """Resource-kind nodes are the change records minus data sources."""
        graph = build_graph(full_plan, GraphOptions(no_data_sources=True))
        resource_nodes = [n for n in graph.nodes if n.kind in (NodeKind.RESOURCE, NodeKind.DATA_SOURCE)]
        data_sources = [c for c in full_plan.resource_changes if c.is_data_source]

        assert len(resource_nodes) == len(full_plan.resource_changes) - len(data_sources)

    def test_excluded_nodes_do_not_redirect_edges(self, full_plan):
        """Dropping a local drops its edges instead of rewiring them."""
        graph = build_graph(full_plan, GraphOptions(no_locals=True))
        edges = edge_addresses(graph)

        assert ("module.app.module.db.aws_s3_bucket.logs", "var.region", EdgeKind.DATA_FLOW) not in edges
        assert not any("local.name_prefix" in (source, target) for source, target, _ in edges)

    def test_nested_module_groups(self, full_plan):
        """Nested modules sit inside their parent, with empty intermediates kept."""
        graph = build_graph(full_plan)

        assert [g.key for g in graph.groups] == ["root", "module.app", "module.app.module.db"]
        assert graph.get_group("module.app").node_ids == ()
        assert graph.get_group("module.app.module.db").parent == "module.app"

    def test_group_by_action(self, full_plan):
        """Action grouping keys by classified action."""
        graph = build_graph(full_plan, GraphOptions(group_by="action"))
        assert [g.key for g in graph.groups] == ["create", "delete", "no-op", "read", "replace", "update"]
        assert all(g.parent is None for g in graph.groups)

    def test_group_by_resource_type(self, full_plan):
        """Type grouping uses the kind name for non-resources."""
        graph = build_graph(full_plan, GraphOptions(group_by=GroupBy.RESOURCE_TYPE))
        assert {g.key for g in graph.groups} == {
            "aws_ami", "aws_db_instance", "aws_instance", "aws_s3_bucket", "local", "output", "variable",
        }

    def test_grouping_never_changes_edges(self, full_plan):
        """Edges are identical for every grouping strategy."""
        edges = {build_graph(full_plan, GraphOptions(group_by=g)).edges for g in GroupBy}
        assert len(edges) == 1

    def test_sorted_output(self, full_plan):
        """Nodes and edges come out sorted."""
        graph = build_graph(full_plan)
        addresses = [n.address for n in graph.nodes]
        edges = [(e.source, e.target, e.kind.value) for e in graph.edges]
        assert addresses == sorted(addresses)
        assert edges == sorted(edges)


class TestBuilderFailures:
    """Test builder failure modes."""

    def test_missing_plan(self):
        """A None plan is a consistency error."""
        with pytest.raises(ConsistencyError):
            GraphBuilder().build(None, GraphOptions())

    def test_empty_plan(self):
        """An empty plan yields an empty graph."""
        graph = build_graph(Plan(format_version="1.2"))
        assert graph.nodes == ()
        assert graph.edges == ()
        assert graph.groups == ()

    def test_id_collision(self, scenario_plan, monkeypatch):
        """Two addresses with one id are rejected."""
        monkeypatch.setattr("tfops.graph.builder.sanitize_id", lambda address: "same")
        with pytest.raises(ConsistencyError) as exc_info:
            build_graph(scenario_plan)
        assert "same" in str(exc_info.value)

    def test_change_without_type_keeps_node(self, load_plan_dict):
        """A record with no type or name is still drawn, just without edges."""
        plan = load_plan_dict({
            "format_version": "1.2",
            "resource_changes": [
                {"address": "aws_instance.a", "mode": "managed", "type": "aws_instance", "name": "a",
                 "change": {"actions": ["create"]}},
                {"address": "aws_instance.b", "change": {"actions": ["create"]},
                 "depends_on": ["aws_instance.a"]},
            ],
        })

        graph = build_graph(plan)
        nodes = {n.address: n for n in graph.nodes}
        assert set(nodes) == {"aws_instance.a", "aws_instance.b"}
        assert nodes["aws_instance.b"].group == "root"
        assert graph.edges == ()

        by_type = build_graph(plan, GraphOptions(group_by=GroupBy.RESOURCE_TYPE))
        assert [g.key for g in by_type.groups] == ["aws_instance", "unknown"]
