from __future__ import annotations

from typing import List, Optional, Sequence

from .checkpoint import Checkpoint
from .config import PushParams
from .graph import Graph, adjacency_from_arcs, check_landmark_reachable, check_query_degrees
from .logging import get_logger
from .stats import Statistics

logger = get_logger(__name__)

# Reference queue arena is compacted once this many entries have been consumed
_COMPACT_AFTER = 1 << 16


def combine_push_vectors(
    settled_s: Sequence[float],
    settled_t: Sequence[float],
    degree: Sequence[float],
    s: int,
    t: int,
) -> float:
    """Combine the two settled vectors into a resistance distance.

    ``settled_x[y] / degree[y]`` approximates the landmark-grounded Green's
    function entry for ``(x, y)``, so each cross term is divided by the degree
    of the node it was accumulated on.
    """
    return (
        settled_s[s] / degree[s]
        + settled_t[t] / degree[t]
        - settled_s[t] / degree[t]
        - settled_t[s] / degree[s]
    )


def _push_phase_reference(
    source: int,
    v: int,
    rmax: float,
    adjacency: List[List[int]],
    degree: List[float],
    checkpoint: Checkpoint,
    progress_base: float,
    stats: Statistics,
) -> List[float]:
    n = len(adjacency)
    residual = [0.0] * n
    settled = [0.0] * n
    residual[source] = 1.0

    queue: List[int] = []
    queued = [False] * n
    head = 0
    if source != v:
        queue.append(source)
        queued[source] = True

    absorbed = 0.0
    pushes = 0
    interval = checkpoint.interval
    while head < len(queue):
        u = queue[head]
        head += 1
        queued[u] = False

        mass = residual[u]
        residual[u] = 0.0
        settled[u] += mass
        if degree[u]:
            share = mass / degree[u]
            for w in adjacency[u]:
                if w == v:
                    absorbed += share
                    continue
                residual[w] += share
                if not queued[w] and residual[w] > degree[w] * rmax:
                    queue.append(w)
                    queued[w] = True

        pushes += 1
        if pushes % interval == 0:
            checkpoint.report(progress_base + 50.0 * min(absorbed, 1.0))
        if head >= _COMPACT_AFTER:
            del queue[:head]
            head = 0

    stats.add_pushes(pushes)
    logger.debug(f"Push from {source} finished after {pushes} pushes, absorbed={absorbed:.6f}")
    return settled


def _push_phase_optimized(
    source: int,
    v: int,
    adjacency: Sequence[Sequence[int]],
    degree: Sequence[int],
    thresholds: Sequence[float],
    checkpoint: Checkpoint,
    progress_base: float,
    stats: Statistics,
) -> List[float]:
    n = len(adjacency)
    residual = [0.0] * n
    settled = [0.0] * n
    residual[source] = 1.0

    # Each node is queued at most once, so n slots always suffice
    ring = [0] * max(n, 1)
    queued = bytearray(n)
    head = 0
    size = 0
    if source != v:
        ring[0] = source
        queued[source] = 1
        size = 1

    absorbed = 0.0
    pushes = 0
    interval = checkpoint.interval
    while size:
        u = ring[head]
        head += 1
        if head == n:
            head = 0
        size -= 1
        queued[u] = 0

        mass = residual[u]
        residual[u] = 0.0
        settled[u] += mass
        deg_u = degree[u]
        if deg_u:
            share = mass / deg_u
            for w in adjacency[u]:
                if w == v:
                    absorbed += share
                    continue
                r_w = residual[w] + share
                residual[w] = r_w
                if not queued[w] and r_w > thresholds[w]:
                    tail = head + size
                    if tail >= n:
                        tail -= n
                    ring[tail] = w
                    queued[w] = 1
                    size += 1

        pushes += 1
        if pushes % interval == 0:
            checkpoint.report(progress_base + 50.0 * min(absorbed, 1.0))

    stats.add_pushes(pushes)
    logger.debug(f"Push from {source} finished after {pushes} pushes, absorbed={absorbed:.6f}")
    return settled


def push_reference(
    graph: Graph,
    params: PushParams,
    checkpoint: Optional[Checkpoint] = None,
    stats: Optional[Statistics] = None,
) -> float:
    """Local push estimate of the s-t resistance distance with landmark v.

    Rebuilds adjacency and degrees from the arc list on every call.
    """
    checkpoint = checkpoint or Checkpoint()
    stats = stats if stats is not None else Statistics()
    s, t, v, rmax = params.s, params.t, params.v, params.rmax

    adjacency, degree = adjacency_from_arcs(graph.n, graph.arcs)
    check_query_degrees(degree, s, t, v)
    check_landmark_reachable(adjacency, s, t, v)
    logger.info(
        f"Starting push (reference): nodes={graph.n} arcs={graph.num_arcs} "
        f"s={s} t={t} v={v} rmax={rmax} landmark_degree={degree[v]:g}"
    )

    settled_s = _push_phase_reference(s, v, rmax, adjacency, degree, checkpoint, 0.0, stats)
    checkpoint.report(50.0)
    settled_t = _push_phase_reference(t, v, rmax, adjacency, degree, checkpoint, 50.0, stats)

    result = combine_push_vectors(settled_s, settled_t, degree, s, t)
    checkpoint.report(100.0)
    logger.info(f"Completed push (reference): distance={result}")
    return result


def push_optimized(
    graph: Graph,
    params: PushParams,
    checkpoint: Optional[Checkpoint] = None,
    stats: Optional[Statistics] = None,
) -> float:
    """Same estimate as :func:`push_reference`, reusing the graph's cached adjacency.

    Uses a fixed ring-buffer queue and precomputed thresholds; results are
    bit-identical to the reference version.
    """
    checkpoint = checkpoint or Checkpoint()
    stats = stats if stats is not None else Statistics()
    s, t, v, rmax = params.s, params.t, params.v, params.rmax

    degree = graph.degrees
    check_query_degrees(degree, s, t, v)
    adjacency = graph.adjacency
    check_landmark_reachable(adjacency, s, t, v)
    thresholds = [d * rmax for d in degree]
    logger.info(
        f"Starting push (optimized): nodes={graph.n} arcs={graph.num_arcs} "
        f"s={s} t={t} v={v} rmax={rmax} landmark_degree={degree[v]}"
    )

    settled_s = _push_phase_optimized(s, v, adjacency, degree, thresholds, checkpoint, 0.0, stats)
    checkpoint.report(50.0)
    settled_t = _push_phase_optimized(t, v, adjacency, degree, thresholds, checkpoint, 50.0, stats)

    result = combine_push_vectors(settled_s, settled_t, degree, s, t)
    checkpoint.report(100.0)
    logger.info(f"Completed push (optimized): distance={result}")
    return result
