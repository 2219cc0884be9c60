"""Synthetic test graphs built with networkx generators."""

from __future__ import annotations

import random
from typing import Callable, Dict, List, Optional

import networkx as nx

from .graph import Graph
from .graph_loader import from_networkx
from .logging import get_logger

logger = get_logger(__name__)

GeneratorFn = Callable[..., nx.Graph]


def _matching(n: int, seed: Optional[int] = None) -> nx.Graph:
    graph = nx.empty_graph(n)
    graph.add_edges_from((i, i + 1) for i in range(0, n - 1, 2))
    return graph


def _random_tree(n: int, seed: Optional[int] = None) -> nx.Graph:
    if n <= 2:
        return nx.path_graph(n)
    rng = random.Random(seed)
    return nx.from_prufer_sequence([rng.randrange(n) for _ in range(n - 2)])


def _planar(n: int, edge_prob: float = 0.1, max_degree: int = 4, seed: Optional[int] = None) -> nx.Graph:
    # Sparse degree-capped random graph, not a certified planar embedding
    rng = random.Random(seed)
    graph = nx.empty_graph(n)
    for i in range(n):
        for j in range(i + 1, n):
            if rng.random() < edge_prob and graph.degree(i) < max_degree and graph.degree(j) < max_degree:
                graph.add_edge(i, j)
    return graph


def _caterpillar(spine_length: int, leg_prob: float = 0.5, seed: Optional[int] = None) -> nx.Graph:
    return nx.random_lobster(spine_length, leg_prob, 0.0, seed=seed)


def _lobster(spine_length: int, p1: float = 0.5, p2: float = 0.5, seed: Optional[int] = None) -> nx.Graph:
    return nx.random_lobster(spine_length, p1, p2, seed=seed)


def _disk_intersection(n: int, radius: float = 0.3, seed: Optional[int] = None) -> nx.Graph:
    return nx.random_geometric_graph(n, radius, seed=seed)


_GENERATORS: Dict[str, GeneratorFn] = {
    "cycle": lambda n, seed=None: nx.cycle_graph(n),
    "path": lambda n, seed=None: nx.path_graph(n),
    "star": lambda n, seed=None: nx.star_graph(n - 1),
    "complete": lambda n, seed=None: nx.complete_graph(n),
    "complete-bipartite": lambda n1, n2, seed=None: nx.complete_bipartite_graph(n1, n2),
    "grid": lambda rows, cols, seed=None: nx.grid_2d_graph(rows, cols),
    "ladder": lambda n, seed=None: nx.ladder_graph(n),
    "wheel": lambda n, seed=None: nx.wheel_graph(n),
    "hypercube": lambda dimension, seed=None: nx.hypercube_graph(dimension),
    "matching": _matching,
    "random-tree": _random_tree,
    "planar": _planar,
    "caterpillar": _caterpillar,
    "lobster": _lobster,
    "disk-intersection": _disk_intersection,
}

_DEFAULT_PARAMS: Dict[str, Dict[str, float]] = {
    "cycle": {"n": 10},
    "path": {"n": 10},
    "star": {"n": 10},
    "complete": {"n": 8},
    "complete-bipartite": {"n1": 4, "n2": 5},
    "grid": {"rows": 5, "cols": 5},
    "ladder": {"n": 8},
    "wheel": {"n": 10},
    "hypercube": {"dimension": 4},
    "matching": {"n": 10},
    "random-tree": {"n": 20},
    "planar": {"n": 30, "edge_prob": 0.1, "max_degree": 4},
    "caterpillar": {"spine_length": 10, "leg_prob": 0.5},
    "lobster": {"spine_length": 10, "p1": 0.5, "p2": 0.5},
    "disk-intersection": {"n": 30, "radius": 0.3},
}


def available_generators() -> List[str]:
    return sorted(_GENERATORS)


def default_params(kind: str) -> Dict[str, float]:
    if kind not in _DEFAULT_PARAMS:
        raise ValueError(f"Unknown graph generator: {kind}")
    return dict(_DEFAULT_PARAMS[kind])


def generate_networkx(kind: str, seed: Optional[int] = None, **params: float) -> nx.Graph:
    try:
        generator = _GENERATORS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown graph generator: {kind}; choose from {', '.join(available_generators())}"
        ) from None
    merged = default_params(kind)
    merged.update(params)
    return generator(seed=seed, **merged)


def generate_graph(kind: str, seed: Optional[int] = None, **params: float) -> Graph:
    """Build a named synthetic graph (see :func:`available_generators`)."""
    nx_graph = generate_networkx(kind, seed=seed, **params)
    graph = from_networkx(nx_graph)
    logger.info(f"Generated {kind} graph: nodes={graph.n} arcs={graph.num_arcs}")
    return graph
