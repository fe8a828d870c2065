"""Unit tests for the Graphviz, Mermaid and PlantUML renderers."""

import pytest

from tfops.config import GraphOptions
from tfops.errors import ConsistencyError
from tfops.graph import (
    GraphvizRenderer,
    MermaidRenderer,
    PlantUMLRenderer,
    build_graph,
)
from tfops.graph.models import Graph, Group, Node, NodeKind
from tfops.graph.styles import group_id, sanitize_id
from tfops.models import ActionType

RENDERERS = [GraphvizRenderer, MermaidRenderer, PlantUMLRenderer]

TRICKY_ADDRESS = 'aws_instance.web["say "hi"\\now"]'


def single_node_graph(address=TRICKY_ADDRESS, kind=NodeKind.RESOURCE, action=ActionType.CREATE, group="root"):
    node = Node(
        id=sanitize_id(address),
        address=address,
        label=address,
        kind=kind,
        action=action,
        group=group,
    )
    return Graph(nodes=(node,), groups=(Group(key="root", label="root", node_ids=(node.id,)),))


@pytest.mark.parametrize("renderer_class", RENDERERS)
class TestAllRenderers:
    """Properties every renderer shares."""

    def test_deterministic(self, renderer_class, full_plan):
        """Rendering the same graph twice is byte-identical."""
        graph = build_graph(full_plan)
        renderer = renderer_class()
        assert renderer.generate(graph, GraphOptions()) == renderer.generate(graph, GraphOptions())

    def test_every_node_rendered(self, renderer_class, full_plan):
        """Every node id and every edge endpoint appears in the output."""
        graph = build_graph(full_plan)
        output = renderer_class().generate(graph, GraphOptions())
        for node in graph.nodes:
            assert node.id in output
        for edge in graph.edges:
            assert edge.source in output and edge.target in output

    def test_unknown_group_rejected(self, renderer_class):
        """A node whose group is missing is a consistency error."""
        with pytest.raises(ConsistencyError):
            renderer_class().generate(single_node_graph(group="module.gone"))

    def test_empty_graph(self, renderer_class):
        """Empty graphs still render a valid skeleton."""
        output = renderer_class().generate(Graph(), GraphOptions())
        assert output.endswith("\n")

    def test_compact_omits_details(self, renderer_class, full_plan):
        """Compact mode drops attribute detail lines."""
        graph = build_graph(full_plan)
        full = renderer_class().generate(graph, GraphOptions())
        compact = renderer_class().generate(graph, GraphOptions(compact=True))
        assert "instance_type" in full
        assert "instance_type" not in compact


@pytest.mark.parametrize("renderer_class,web_edge,db_edge,database_group", [
    (
        GraphvizRenderer,
        '"aws__instance_2e_web" -> "aws__security__group_2e_web";',
        '"module_2e_database_2e_aws__instance_2e_db" -> "aws__instance_2e_web";',
        'subgraph "cluster__grp_module_2e_database" {',
    ),
    (
        MermaidRenderer,
        "aws__instance_2e_web --> aws__security__group_2e_web",
        "module_2e_database_2e_aws__instance_2e_db --> aws__instance_2e_web",
        'subgraph _grp_module_2e_database["module.database"]',
    ),
    (
        PlantUMLRenderer,
        "aws__instance_2e_web --> aws__security__group_2e_web",
        "module_2e_database_2e_aws__instance_2e_db --> aws__instance_2e_web",
        'package "module.database" as _grp_module_2e_database {',
    ),
])
def test_explicit_dependencies_rendered(renderer_class, web_edge, db_edge, database_group, explicit_scenario_plan):
    """Dependencies declared on change records reach every diagram format."""
    graph = build_graph(explicit_scenario_plan)
    output = renderer_class().generate(graph, GraphOptions())

    assert len(graph.nodes) == 3
    for node in graph.nodes:
        assert node.id in output
    assert web_edge in output
    assert db_edge in output
    assert database_group in output
    assert group_id("root") in output


class TestGraphvizRenderer:
    """Test DOT output."""

    def test_metadata(self):
        renderer = GraphvizRenderer()
        assert renderer.format_name == "graphviz"
        assert renderer.get_file_extension() == ".dot"

    def test_scenario(self, scenario_plan):
        """Clusters per module and edges from consumer to dependency."""
        output = GraphvizRenderer().generate(build_graph(scenario_plan), GraphOptions())

        assert output.startswith("digraph terraform_plan {\n")
        assert output.endswith("}\n")
        assert 'subgraph "cluster__grp_root" {' in output
        assert 'subgraph "cluster__grp_module_2e_database" {' in output
        assert '"aws__instance_2e_web" -> "aws__security__group_2e_web";' in output
        assert '"module_2e_database_2e_aws__instance_2e_db" -> "aws__instance_2e_web";' in output
        assert 'label="aws_instance.web\\n[create]"' in output

    def test_nested_clusters(self, full_plan):
        """A nested module cluster is opened inside its parent's cluster."""
        lines = GraphvizRenderer().generate(build_graph(full_plan), GraphOptions()).splitlines()
        parent = lines.index('  subgraph "cluster__grp_module_2e_app" {')
        child = lines.index('    subgraph "cluster__grp_module_2e_app_2e_module_2e_db" {')
        parent_close = lines.index("  }", parent)
        assert parent < child < parent_close

    def test_escaping(self):
        """Quotes and backslashes are escaped inside DOT strings."""
        output = GraphvizRenderer().generate(single_node_graph(), GraphOptions())
        assert 'label="aws_instance.web[\\"say \\"hi\\"\\\\now\\"]\\n[create]"' in output

    def test_data_flow_edges_dashed(self, full_plan):
        output = GraphvizRenderer().generate(build_graph(full_plan), GraphOptions())
        assert '"local_2e_name__prefix" -> "var_2e_region" [style=dashed];' in output


class TestMermaidRenderer:
    """Test Mermaid flowchart output."""

    def test_metadata(self):
        renderer = MermaidRenderer()
        assert renderer.format_name == "mermaid"
        assert renderer.get_file_extension() == ".mmd"

    def test_scenario(self, scenario_plan):
        """Subgraphs per module, quoted labels and styled classes."""
        output = MermaidRenderer().generate(build_graph(scenario_plan), GraphOptions())
        lines = output.splitlines()

        assert lines[0] == "flowchart TB"
        assert '    subgraph _grp_root["root"]' in lines
        assert '    subgraph _grp_module_2e_database["module.database"]' in lines
        assert '        aws__instance_2e_web["aws_instance.web<br/>[create]"]' in lines
        assert "    aws__instance_2e_web --> aws__security__group_2e_web" in lines
        assert lines.count("    end") == 2
        assert any(line.startswith("    classDef create fill:#d4edda") for line in lines)

    def test_escape_label(self):
        """Special characters become entity codes, with # escaped first."""
        assert MermaidRenderer._escape_label('a "b" <c> & #d') == "a #quot;b#quot; #lt;c#gt; #amp; #35;d"

    def test_escaping_in_output(self):
        """Quotes never appear raw inside a label."""
        output = MermaidRenderer().generate(single_node_graph(), GraphOptions())
        assert 'aws_instance.web[#quot;say #quot;hi#quot;\\now#quot;]<br/>[create]' in output

    def test_shapes(self, full_plan):
        """Each node kind maps to its Mermaid shape."""
        output = MermaidRenderer().generate(build_graph(full_plan), GraphOptions(compact=True))
        assert 'data_2e_aws__ami_2e_ubuntu{"data.aws_ami.ubuntu<br/>[read]"}' in output
        assert 'output_2e_instance__ip[/"output.instance_ip<br/>[create]"\\]' in output
        assert 'var_2e_region[("var.region<br/>[no-op]")]' in output
        assert 'local_2e_name__prefix{{"local.name_prefix<br/>[no-op]"}}' in output

    def test_nested_subgraphs(self, full_plan):
        """Nested modules are nested subgraphs."""
        lines = MermaidRenderer().generate(build_graph(full_plan), GraphOptions()).splitlines()
        parent = lines.index('    subgraph _grp_module_2e_app["module.app"]')
        child = lines.index('        subgraph _grp_module_2e_app_2e_module_2e_db["module.app.module.db"]')
        assert child == parent + 1
        assert lines[child + 2] == "        end"
        assert lines[child + 3] == "    end"


class TestPlantUMLRenderer:
    """Test PlantUML output."""

    def test_metadata(self):
        renderer = PlantUMLRenderer()
        assert renderer.format_name == "plantuml"
        assert renderer.get_file_extension() == ".puml"

    def test_scenario(self, scenario_plan):
        """Packages per module and arrows between aliases."""
        output = PlantUMLRenderer().generate(build_graph(scenario_plan), GraphOptions())
        lines = output.splitlines()

        assert lines[0] == "@startuml"
        assert lines[-1] == "@enduml"
        assert 'package "root" as _grp_root {' in lines
        assert 'package "module.database" as _grp_module_2e_database {' in lines
        assert '  rectangle "aws_instance.web\\n[create]" as aws__instance_2e_web #d4edda' in lines
        assert "aws__instance_2e_web --> aws__security__group_2e_web" in lines

    def test_escaping(self):
        """Double quotes become <U+0022> and backslashes are doubled."""
        output = PlantUMLRenderer().generate(single_node_graph(), GraphOptions())
        assert '"aws_instance.web[<U+0022>say <U+0022>hi<U+0022>\\\\now<U+0022>]\\n[create]"' in output

    def test_element_types(self, full_plan):
        """Node kinds map to distinct PlantUML elements."""
        output = PlantUMLRenderer().generate(build_graph(full_plan), GraphOptions())
        assert 'storage "data.aws_ami.ubuntu' in output
        assert 'artifact "output.instance_ip' in output
        assert 'database "var.region' in output
        assert 'card "local.name_prefix' in output
        assert "local_2e_name__prefix ..> var_2e_region" in output
