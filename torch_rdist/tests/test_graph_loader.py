from __future__ import annotations

import logging
from pathlib import Path

import networkx as nx
import pytest

from torch_rdist.lib.errors import GraphParseError
from torch_rdist.lib.graph import Graph
from torch_rdist.lib.graph_loader import (
    find_max_degree_node,
    from_networkx,
    load_graph,
    load_graphml,
    parse_edge_list,
    validate_graph,
)


def test_parse_zero_based_with_comments_and_blank_lines() -> None:
    content = "# a comment\n\n0 1\n1 2\n\n# another\n2 0\n"
    parsed = parse_edge_list(content)

    assert not parsed.was_one_based
    assert parsed.graph.n == 3
    assert parsed.graph.arcs == ((0, 1), (1, 0), (1, 2), (2, 1), (2, 0), (0, 2))
    assert parsed.declared_nodes is None
    assert parsed.edge_lines == 3


def test_parse_one_based_with_metadata() -> None:
    parsed = parse_edge_list("3 3\n1 2\n2 3\n3 1\n")

    assert parsed.was_one_based
    assert parsed.original_max_node_id == 3
    assert parsed.declared_nodes == 3
    assert parsed.declared_edges == 3
    assert parsed.graph.n == 3
    assert parsed.graph.neighbors(0) == (1, 2)


def test_metadata_mismatch_only_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        parsed = parse_edge_list("10 7\n0 1\n1 2\n")

    assert parsed.graph.n == 3
    messages = " ".join(record.getMessage() for record in caplog.records)
    assert "Node count mismatch" in messages
    assert "Edge count mismatch" in messages


def test_self_loop_inserts_single_arc() -> None:
    parsed = parse_edge_list("0 0\n0 1\n")

    assert parsed.graph.arcs == ((0, 0), (0, 1), (1, 0))
    assert parsed.graph.degree(0) == 2


@pytest.mark.parametrize(
    ("content", "line"),
    [
        ("0 1\n1 2 3\n", 2),
        ("0 1\n# c\nx 2\n", 3),
        ("0 1\n1 -2\n", 2),
        ("0\n", 1),
    ],
)
def test_malformed_lines_report_line_number(content: str, line: int) -> None:
    with pytest.raises(GraphParseError) as excinfo:
        parse_edge_list(content)
    assert excinfo.value.line == line
    assert f"line {line}" in str(excinfo.value)


def test_empty_input_is_a_parse_error() -> None:
    with pytest.raises(GraphParseError):
        parse_edge_list("# nothing here\n\n")


def test_load_graph_reads_edge_list_file(tmp_path: Path) -> None:
    path = tmp_path / "demo.txt"
    path.write_text("1 2\n2 3\n3 4\n4 1\n", encoding="utf-8")

    graph = load_graph(path)

    # "1 2" on the first data line is taken as metadata
    assert graph.n == 4
    assert graph.num_arcs == 6


def test_graphml_round_trip(tmp_path: Path) -> None:
    source = nx.cycle_graph(5)
    path = tmp_path / "cycle.graphml"
    nx.write_graphml(source, path)

    graph = load_graphml(path)

    assert graph.n == 5
    assert graph.num_arcs == 10
    assert sorted(graph.neighbors(0)) == [1, 4]
    assert load_graph(path).arcs == graph.arcs


def test_from_networkx_keeps_insertion_order_for_non_integer_labels() -> None:
    source = nx.Graph()
    source.add_edges_from([("b", "a"), ("a", "c")])

    graph = from_networkx(source)

    assert graph.n == 3
    assert graph.neighbors(0) == (1,)
    assert graph.degree(1) == 2


def test_from_networkx_keeps_parallel_edges() -> None:
    source = nx.MultiGraph()
    source.add_edges_from([(0, 1), (0, 1), (1, 2)])

    graph = from_networkx(source)

    assert graph.neighbors(0) == (1, 1)
    assert graph.degree(1) == 3


def test_validate_graph(caplog: pytest.LogCaptureFixture, with_isolated: Graph) -> None:
    with caplog.at_level(logging.WARNING):
        validate_graph(with_isolated)
    assert any("isolated" in record.getMessage() for record in caplog.records)

    with pytest.raises(GraphParseError):
        validate_graph(Graph(0, []))
    with pytest.raises(GraphParseError):
        validate_graph(Graph(3, []))


def test_find_max_degree_node() -> None:
    graph = Graph.from_edges([(0, 1), (1, 2), (1, 3), (2, 3)], 4)
    assert find_max_degree_node(graph) == 1
