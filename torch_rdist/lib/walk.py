from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import torch

from .checkpoint import Checkpoint
from .config import RuntimeConfig, WalkParams
from .graph import Graph, adjacency_from_arcs, check_query_degrees
from .logging import get_logger
from .stats import Statistics

logger = get_logger(__name__)

NON_CONVERGED = float("nan")


class UniformStream:
    """Buffered ``[0, 1)`` draws from a torch generator, one float at a time."""

    def __init__(self, generator: torch.Generator, chunk: int = 4096) -> None:
        self.generator = generator
        self.chunk = chunk
        self._buffer: List[float] = []
        self._pos = 0

    def next(self) -> float:
        if self._pos == len(self._buffer):
            self._buffer = torch.rand(self.chunk, generator=self.generator, dtype=torch.float64).tolist()
            self._pos = 0
        value = self._buffer[self._pos]
        self._pos += 1
        return value


def combine_walk_counts(
    tauss: float,
    taust: float,
    tauts: float,
    tautt: float,
    degree: Sequence[float],
    s: int,
    t: int,
    times: int,
) -> float:
    return (
        tauss / (degree[s] * times)
        - taust / (degree[t] * times)
        - tauts / (degree[s] * times)
        + tautt / (degree[t] * times)
    )


def _walk_phase_reference(
    start: int,
    s: int,
    t: int,
    v: int,
    times: int,
    adjacency: List[List[int]],
    degree: List[float],
    stream: UniformStream,
    max_steps: int,
    checkpoint: Checkpoint,
    progress_base: float,
    stats: Statistics,
) -> Optional[Tuple[int, int]]:
    hits_s = 0
    hits_t = 0
    interval = checkpoint.interval
    since_check = 0
    for walk in range(times):
        u = start
        steps = 0
        while u != v:
            if steps >= max_steps:
                logger.warning(f"Walk from {start} exceeded {max_steps} steps without reaching v={v}")
                stats.incr_non_converged()
                return None
            if u == s:
                hits_s += 1
            if u == t:
                hits_t += 1
            deg = int(degree[u])
            if deg == 0:
                logger.warning(f"Walk from {start} is stuck at node {u} with no outgoing arcs")
                stats.incr_non_converged()
                return None
            idx = int(stream.next() * deg)
            if idx >= deg:
                idx = deg - 1
            u = adjacency[u][idx]
            steps += 1
            since_check += 1
            if since_check >= interval:
                since_check = 0
                checkpoint.report(progress_base + 50.0 * walk / times)
        stats.add_walks(1, steps)
        stats.record_walk_length(steps)
    return hits_s, hits_t


def _walk_phase_optimized(
    start: int,
    s: int,
    t: int,
    v: int,
    times: int,
    csr: Tuple[torch.Tensor, torch.Tensor, torch.Tensor],
    generator: torch.Generator,
    max_steps: int,
    checkpoint: Checkpoint,
    progress_base: float,
    stats: Statistics,
) -> Optional[Tuple[int, int]]:
    offsets, targets, degrees = csr
    device = offsets.device
    positions = torch.full((times,), start, dtype=torch.long, device=device)
    positions = positions[positions != v]

    hits_s = 0
    hits_t = 0
    step = 0
    total_steps = 0
    since_check = 0
    while positions.numel() > 0:
        if step >= max_steps:
            logger.warning(
                f"{positions.numel()} walk(s) from {start} exceeded {max_steps} steps without reaching v={v}"
            )
            stats.incr_non_converged()
            return None
        hits_s += int(torch.count_nonzero(positions == s))
        hits_t += int(torch.count_nonzero(positions == t))

        deg = degrees[positions]
        if bool((deg == 0).any()):
            logger.warning(f"Walk from {start} is stuck at a node with no outgoing arcs")
            stats.incr_non_converged()
            return None
        draws = torch.rand(positions.numel(), generator=generator, dtype=torch.float64).to(device)
        choice = torch.minimum((draws * deg).long(), deg - 1)
        positions = targets[offsets[positions] + choice]

        active = positions.numel()
        total_steps += active
        since_check += active
        step += 1
        positions = positions[positions != v]
        if since_check >= checkpoint.interval:
            since_check = 0
            checkpoint.report(progress_base + 50.0 * (1.0 - positions.numel() / times))

    stats.add_walks(times, total_steps)
    stats.record_walk_length(step)
    return hits_s, hits_t


def walk_reference(
    graph: Graph,
    params: WalkParams,
    config: Optional[RuntimeConfig] = None,
    checkpoint: Optional[Checkpoint] = None,
    stats: Optional[Statistics] = None,
) -> float:
    """Monte-Carlo estimate from ``times`` v-absorbed walks out of s and out of t.

    Walks run one after another in Python. Returns ``NaN`` if a walk exceeds
    ``config.max_walk_steps`` or gets stuck.
    """
    config = config or RuntimeConfig()
    checkpoint = checkpoint or Checkpoint()
    stats = stats if stats is not None else Statistics()
    s, t, v, times = params.s, params.t, params.v, params.times

    adjacency, degree = adjacency_from_arcs(graph.n, graph.arcs)
    check_query_degrees(degree, s, t, v)
    stream = UniformStream(config.make_generator())
    logger.info(
        f"Starting random walks (reference): nodes={graph.n} arcs={graph.num_arcs} "
        f"s={s} t={t} v={v} times={times} seed={config.seed}"
    )

    from_s = _walk_phase_reference(
        s, s, t, v, times, adjacency, degree, stream, config.max_walk_steps, checkpoint, 0.0, stats
    )
    if from_s is None:
        return NON_CONVERGED
    checkpoint.report(50.0)
    from_t = _walk_phase_reference(
        t, s, t, v, times, adjacency, degree, stream, config.max_walk_steps, checkpoint, 50.0, stats
    )
    if from_t is None:
        return NON_CONVERGED

    tauss, taust = from_s
    tauts, tautt = from_t
    result = combine_walk_counts(tauss, taust, tauts, tautt, degree, s, t, times)
    checkpoint.report(100.0)
    logger.info(
        f"Completed random walks (reference): distance={result} "
        f"tauss={tauss} taust={taust} tauts={tauts} tautt={tautt}"
    )
    return result


def walk_optimized(
    graph: Graph,
    params: WalkParams,
    config: Optional[RuntimeConfig] = None,
    checkpoint: Optional[Checkpoint] = None,
    stats: Optional[Statistics] = None,
) -> float:
    """Batched version of :func:`walk_reference`.

    All walks of a phase advance together over the graph's CSR tensors. Same
    estimator and seed contract, different random stream.
    """
    config = config or RuntimeConfig()
    checkpoint = checkpoint or Checkpoint()
    stats = stats if stats is not None else Statistics()
    s, t, v, times = params.s, params.t, params.v, params.times

    degree = graph.degrees
    check_query_degrees(degree, s, t, v)
    csr = graph.csr(config.torch_device())
    generator = config.make_generator()
    logger.info(
        f"Starting random walks (optimized): nodes={graph.n} arcs={graph.num_arcs} "
        f"s={s} t={t} v={v} times={times} seed={config.seed} device={csr[0].device}"
    )

    from_s = _walk_phase_optimized(
        s, s, t, v, times, csr, generator, config.max_walk_steps, checkpoint, 0.0, stats
    )
    if from_s is None:
        return NON_CONVERGED
    checkpoint.report(50.0)
    from_t = _walk_phase_optimized(
        t, s, t, v, times, csr, generator, config.max_walk_steps, checkpoint, 50.0, stats
    )
    if from_t is None:
        return NON_CONVERGED

    tauss, taust = from_s
    tauts, tautt = from_t
    result = combine_walk_counts(tauss, taust, tauts, tautt, degree, s, t, times)
    checkpoint.report(100.0)
    logger.info(
        f"Completed random walks (optimized): distance={result} "
        f"tauss={tauss} taust={taust} tauts={tauts} tautt={tautt}"
    )
    return result


def is_non_converged(value: float) -> bool:
    return math.isnan(value)
