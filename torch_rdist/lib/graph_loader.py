from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import networkx as nx

from .errors import GraphParseError
from .graph import Graph
from .logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ParsedGraph:
    graph: Graph
    was_one_based: bool
    original_max_node_id: int
    declared_nodes: Optional[int] = None
    declared_edges: Optional[int] = None
    edge_lines: int = 0


def _parse_positive_pair(parts: List[str]) -> Optional[Tuple[int, int]]:
    try:
        first, second = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if first > 0 and second > 0:
        return first, second
    return None


def parse_edge_list(content: str) -> ParsedGraph:
    """Parse ``u v`` lines into an undirected graph.

    Blank lines and ``#`` comments are skipped. The first data line holding two
    positive integers is read as ``n m`` metadata and only used for warnings.
    If the smallest id is 1 the ids are shifted to start at 0. Each edge adds
    both arcs, a self-loop adds one.

    Raises:
        GraphParseError: on a malformed line or when no edge is found.
    """
    raw_edges: List[Tuple[int, int]] = []
    declared_nodes: Optional[int] = None
    declared_edges: Optional[int] = None
    first_data_line = True

    for line_number, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split()
        if first_data_line:
            first_data_line = False
            if len(parts) == 2:
                metadata = _parse_positive_pair(parts)
                if metadata is not None:
                    declared_nodes, declared_edges = metadata
                    logger.info(f"Found metadata line: nodes={declared_nodes} edges={declared_edges}")
                    continue

        if len(parts) != 2:
            raise GraphParseError(
                f"Invalid edge format at line {line_number}: expected 2 numbers, got {len(parts)}",
                line_number,
            )
        try:
            source, target = int(parts[0]), int(parts[1])
        except ValueError:
            raise GraphParseError(
                f"Invalid node IDs at line {line_number}: could not parse as integers",
                line_number,
            ) from None
        if source < 0 or target < 0:
            raise GraphParseError(
                f"Invalid node IDs at line {line_number}: negative IDs not allowed",
                line_number,
            )
        raw_edges.append((source, target))

    if not raw_edges:
        raise GraphParseError("No edges found in the input")

    min_id = min(min(u, w) for u, w in raw_edges)
    max_id = max(max(u, w) for u, w in raw_edges)
    was_one_based = min_id == 1
    shift = 1 if was_one_based else 0
    logger.info(f"Detected node ID base: min={min_id} max={max_id} one_based={was_one_based}")

    node_count = max_id - shift + 1
    graph = Graph.from_edges(((u - shift, w - shift) for u, w in raw_edges), node_count)

    if declared_nodes is not None and declared_nodes != node_count:
        logger.warning(f"Node count mismatch: declared={declared_nodes} actual={node_count}")
    if declared_edges is not None and declared_edges != len(raw_edges):
        logger.warning(f"Edge count mismatch: declared={declared_edges} actual={len(raw_edges)}")

    logger.info(f"Parsed graph: nodes={graph.n} arcs={graph.num_arcs} one_based={was_one_based}")
    return ParsedGraph(
        graph=graph,
        was_one_based=was_one_based,
        original_max_node_id=max_id,
        declared_nodes=declared_nodes,
        declared_edges=declared_edges,
        edge_lines=len(raw_edges),
    )


def load_edge_list(path: str | Path) -> ParsedGraph:
    return parse_edge_list(Path(path).read_text(encoding="utf-8"))


def from_networkx(graph: nx.Graph) -> Graph:
    """Convert a networkx graph, numbering nodes ``0..n-1``.

    Integer-like labels are ordered numerically, anything else keeps insertion
    order. Parallel edges of multigraphs are kept.
    """
    try:
        nodes = sorted(graph.nodes(), key=lambda node_id: int(node_id))
    except (TypeError, ValueError):
        nodes = list(graph.nodes())
    index_map = {node_id: idx for idx, node_id in enumerate(nodes)}
    edges = [(index_map[u], index_map[v]) for u, v in graph.edges()]
    return Graph.from_edges(edges, len(nodes))


def load_graphml(path: str | Path) -> Graph:
    graph = nx.read_graphml(Path(path))
    if graph.is_directed():
        logger.warning("GraphML input is directed; edges are treated as undirected")
        graph = graph.to_undirected(as_view=False)
    return from_networkx(graph)


def load_graph(path: str | Path) -> Graph:
    path = Path(path)
    if path.suffix.lower() == ".graphml":
        return load_graphml(path)
    return load_edge_list(path).graph


def validate_graph(graph: Graph) -> None:
    """Reject empty graphs; warn about self-loops and isolated nodes."""
    if graph.n <= 0:
        raise GraphParseError("Graph must have at least one node")
    if graph.num_arcs == 0:
        raise GraphParseError("Graph must have at least one edge")

    self_loops = sum(1 for u, w in graph.arcs if u == w)
    if self_loops:
        logger.warning(f"Found {self_loops} self-loop(s) in the graph")
    isolated = sum(1 for d in graph.degrees if d == 0)
    if isolated:
        logger.warning(f"Found {isolated} isolated node(s) with no edges")


def find_max_degree_node(graph: Graph) -> int:
    """Lowest id among the nodes of maximum degree."""
    if graph.n == 0:
        raise ValueError("Graph has no nodes")
    degrees = graph.degrees
    node = max(range(graph.n), key=lambda u: (degrees[u], -u))
    logger.info(f"Max degree node: {node} with degree {degrees[node]}")
    return node
