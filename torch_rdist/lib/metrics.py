"""Error metrics of a resistance-distance estimate against a ground truth."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .logging import get_logger

logger = get_logger(__name__)

# Below this magnitude a ground truth makes relative error meaningless
RELATIVE_ERROR_EPSILON = 1e-10


@dataclass(frozen=True)
class ErrorMetrics:
    absolute: float
    relative: float


def absolute_error(result: float, ground_truth: float) -> float:
    return abs(result - ground_truth)


def relative_error(result: float, ground_truth: float) -> float:
    """``|result - truth| / |truth|``, or ``inf`` when ``|truth|`` is below the epsilon."""
    if abs(ground_truth) < RELATIVE_ERROR_EPSILON:
        logger.warning(
            f"Ground truth {ground_truth!r} is near zero; reporting relative error as infinity"
        )
        return math.inf
    return abs(result - ground_truth) / abs(ground_truth)


def error_metrics(result: float, ground_truth: float) -> ErrorMetrics:
    metrics = ErrorMetrics(
        absolute=absolute_error(result, ground_truth),
        relative=relative_error(result, ground_truth),
    )
    logger.debug(f"Error metrics: {metrics}")
    return metrics


def format_error_metrics(metrics: ErrorMetrics) -> str:
    return f"Absolute: {metrics.absolute:.3e}, Relative: {metrics.relative * 100:.2f}%"
