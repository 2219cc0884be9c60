from __future__ import annotations

import logging
import math

import pytest

from torch_rdist.lib.metrics import (
    ErrorMetrics,
    absolute_error,
    error_metrics,
    format_error_metrics,
    relative_error,
)


def test_absolute_and_relative_error() -> None:
    assert absolute_error(0.9, 1.0) == pytest.approx(0.1)
    assert absolute_error(1.1, 1.0) == pytest.approx(0.1)
    assert relative_error(0.5, 0.25) == pytest.approx(1.0)


def test_near_zero_ground_truth_gives_infinite_relative_error(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        value = relative_error(0.1, 1e-12)
    assert math.isinf(value)
    assert "near zero" in caplog.text


def test_exact_estimate() -> None:
    metrics = error_metrics(0.75, 0.75)
    assert metrics == ErrorMetrics(absolute=0.0, relative=0.0)


def test_format_error_metrics() -> None:
    text = format_error_metrics(ErrorMetrics(absolute=0.00123, relative=0.05))
    assert text == "Absolute: 1.230e-03, Relative: 5.00%"
