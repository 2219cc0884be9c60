from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import Optional, Union

from .checkpoint import Checkpoint
from .config import AlgorithmParams, Implementation, PushParams, RuntimeConfig, Variant, WalkParams
from .graph import Graph
from .logging import get_logger
from .metrics import ErrorMetrics, error_metrics
from .push import push_optimized, push_reference
from .stats import Statistics
from .walk import walk_optimized, walk_reference

logger = get_logger(__name__)


@dataclass(frozen=True)
class ComputationResult:
    distance: float
    elapsed: float
    variant: Variant
    implementation: Implementation
    params: AlgorithmParams
    statistics: Statistics
    metrics: Optional[ErrorMetrics] = None

    @property
    def converged(self) -> bool:
        return not math.isnan(self.distance)

    def with_ground_truth(self, ground_truth: float) -> "ComputationResult":
        return replace(self, metrics=error_metrics(self.distance, ground_truth))


def estimate(
    graph: Graph,
    params: AlgorithmParams,
    config: Optional[RuntimeConfig] = None,
    checkpoint: Optional[Checkpoint] = None,
) -> tuple[float, Statistics]:
    """Run the estimator selected by ``params`` and ``config.implementation``.

    Returns the distance (``NaN`` for non-converged walks) and the work counters.
    """
    config = config or RuntimeConfig()
    config.validate()
    params.validate(graph.n)
    implementation = Implementation(config.implementation)
    stats = Statistics()

    if isinstance(params, PushParams):
        if implementation is Implementation.REFERENCE:
            value = push_reference(graph, params, checkpoint, stats)
        else:
            value = push_optimized(graph, params, checkpoint, stats)
        return value, stats

    if implementation is Implementation.REFERENCE:
        value = walk_reference(graph, params, config, checkpoint, stats)
    else:
        value = walk_optimized(graph, params, config, checkpoint, stats)
    return value, stats


def compute_resistance(
    variant: Union[Variant, str],
    graph: Graph,
    params: AlgorithmParams,
    config: Optional[RuntimeConfig] = None,
    checkpoint: Optional[Checkpoint] = None,
    ground_truth: Optional[float] = None,
) -> ComputationResult:
    variant = Variant(variant)
    if params.variant is not variant:
        expected = PushParams if variant is Variant.PUSH else WalkParams
        raise ValueError(f"Variant {variant.value} expects {expected.__name__}, got {type(params).__name__}")
    config = config or RuntimeConfig()

    start_time = time.perf_counter()
    value, stats = estimate(graph, params, config, checkpoint)
    elapsed = time.perf_counter() - start_time

    result = ComputationResult(
        distance=value,
        elapsed=elapsed,
        variant=variant,
        implementation=Implementation(config.implementation),
        params=params,
        statistics=stats,
    )
    if ground_truth is not None:
        result = result.with_ground_truth(ground_truth)
    logger.info(
        f"{variant.value}/{config.implementation} finished in {elapsed:.4f}s, distance={value}"
    )
    return result
