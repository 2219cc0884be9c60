from __future__ import annotations

import threading
from collections import deque
from typing import Dict, Iterable, List, Sequence, Tuple

import torch

from .errors import DomainError

Arc = Tuple[int, int]


class Graph:
    """Undirected graph stored as a list of directed arcs.

    Every undirected edge is expected as two opposite arcs and a self-loop as a
    single arc; symmetry is not checked. Neighbor lists keep arc-insertion order
    and keep duplicates, so parallel edges weigh proportionally.
    """

    def __init__(self, n: int, arcs: Sequence[Arc]) -> None:
        if n < 0:
            raise ValueError("Node count must be non-negative")
        self.n = int(n)
        adjacency: List[List[int]] = [[] for _ in range(self.n)]
        normalised: List[Arc] = []
        for u, w in arcs:
            u = int(u)
            w = int(w)
            if not (0 <= u < self.n and 0 <= w < self.n):
                raise ValueError(f"Arc ({u}, {w}) has an endpoint outside 0..{self.n - 1}")
            adjacency[u].append(w)
            normalised.append((u, w))
        self._arcs: Tuple[Arc, ...] = tuple(normalised)
        self._adjacency: Tuple[Tuple[int, ...], ...] = tuple(tuple(nbrs) for nbrs in adjacency)
        self._degree: Tuple[int, ...] = tuple(len(nbrs) for nbrs in adjacency)
        self._csr: Dict[str, Tuple[torch.Tensor, torch.Tensor, torch.Tensor]] = {}
        self._csr_lock = threading.Lock()

    @classmethod
    def build(cls, arcs: Iterable[Arc], n: int) -> "Graph":
        return cls(n, list(arcs))

    @classmethod
    def from_edges(cls, edges: Iterable[Arc], n: int) -> "Graph":
        """Build from undirected edges, inserting both arcs (one for a self-loop)."""
        arcs: List[Arc] = []
        for u, w in edges:
            arcs.append((u, w))
            if u != w:
                arcs.append((w, u))
        return cls(n, arcs)

    @property
    def arcs(self) -> Tuple[Arc, ...]:
        return self._arcs

    @property
    def num_arcs(self) -> int:
        return len(self._arcs)

    @property
    def adjacency(self) -> Tuple[Tuple[int, ...], ...]:
        return self._adjacency

    @property
    def degrees(self) -> Tuple[int, ...]:
        return self._degree

    def degree(self, u: int) -> int:
        return self._degree[u]

    def neighbors(self, u: int) -> Tuple[int, ...]:
        return self._adjacency[u]

    def csr(self, device: torch.device | str = "cpu") -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """Return ``(offsets, targets, degrees)`` as ``torch.long`` tensors on ``device``.

        Built once per device and cached; the tensors must be treated as read-only.
        """
        key = str(device)
        with self._csr_lock:
            cached = self._csr.get(key)
            if cached is None:
                degrees = torch.tensor(self._degree, dtype=torch.long)
                offsets = torch.zeros(self.n + 1, dtype=torch.long)
                if self.n:
                    offsets[1:] = torch.cumsum(degrees, dim=0)
                targets = torch.tensor(
                    [w for nbrs in self._adjacency for w in nbrs], dtype=torch.long
                )
                cached = (offsets.to(device), targets.to(device), degrees.to(device))
                self._csr[key] = cached
        return cached

    def __repr__(self) -> str:
        return f"Graph(n={self.n}, arcs={self.num_arcs})"


def check_query_degrees(degree: Sequence[float], s: int, t: int, v: int) -> None:
    """Raise ``DomainError`` if ``s``, ``t`` or the landmark ``v`` has no outgoing arc."""
    for name, node in (("s", s), ("t", t), ("v", v)):
        if degree[node] == 0:
            raise DomainError(
                f"Node {name}={node} has degree 0; resistance distance is undefined"
            )


def reaches(adjacency: Sequence[Sequence[int]], source: int, target: int) -> bool:
    """Breadth-first search along out-arcs, stopping as soon as ``target`` is seen."""
    if source == target:
        return True
    seen = {source}
    frontier = deque([source])
    while frontier:
        u = frontier.popleft()
        for w in adjacency[u]:
            if w == target:
                return True
            if w not in seen:
                seen.add(w)
                frontier.append(w)
    return False


def check_landmark_reachable(adjacency: Sequence[Sequence[int]], s: int, t: int, v: int) -> None:
    """Raise ``DomainError`` unless ``v`` can be reached from both ``s`` and ``t``.

    Push never absorbs mass in a component without ``v``, so its queue would not drain.
    """
    for name, node in (("s", s), ("t", t)):
        if not reaches(adjacency, node, v):
            raise DomainError(
                f"Landmark v={v} is not reachable from {name}={node}; resistance distance is undefined"
            )


def adjacency_from_arcs(n: int, arcs: Iterable[Arc]) -> Tuple[List[List[int]], List[float]]:
    """Rebuild neighbor lists and float degrees straight from an arc list."""
    adjacency: List[List[int]] = [[] for _ in range(n)]
    degree = [0.0] * n
    for u, w in arcs:
        adjacency[u].append(w)
        degree[u] += 1.0
    return adjacency, degree
