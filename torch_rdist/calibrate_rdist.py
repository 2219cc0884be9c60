from __future__ import annotations

import argparse
import json
import math
import statistics
from collections import defaultdict
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Sequence

from torch_rdist.lib.config import Variant
from torch_rdist.lib.metrics import ErrorMetrics, error_metrics, format_error_metrics
from torch_rdist.lib.run_rdist_logged import run_rdist_logged


@dataclass
class TrialResult:
    algorithm: str
    knob: float
    seed: int
    estimate: float
    error: float
    relative_error: float
    duration: float
    log_path: str

    @property
    def converged(self) -> bool:
        return not math.isnan(self.estimate)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Calibrate rmax / walk counts against a ground truth")
    parser.add_argument("--path", required=True, type=Path, help="Edge list or GraphML input")
    parser.add_argument("--target", required=True, type=float, help="Reference resistance distance")
    parser.add_argument("-s", "--source", type=int, required=True)
    parser.add_argument("-t", "--target-node", dest="target_node", type=int, required=True)
    parser.add_argument("-v", "--landmark", type=int, default=None)
    parser.add_argument(
        "--algorithm",
        choices=[item.value for item in Variant],
        default=Variant.PUSH.value,
        help="Estimator whose accuracy knob is swept",
    )
    parser.add_argument("--implementation", choices=["reference", "optimized"], default="optimized")
    parser.add_argument("--rmax-start", type=float, default=1e-2, help="Coarsest rmax for push sweeps")
    parser.add_argument("--rmax-min", type=float, default=1e-9, help="Finest rmax for push sweeps")
    parser.add_argument("--rmax-factor", type=float, default=10.0, help="Divisor between rmax steps")
    parser.add_argument("--times-start", type=int, default=1000, help="Starting walk count")
    parser.add_argument("--times-max", type=int, default=100000, help="Maximum walk count")
    parser.add_argument("--times-factor", type=float, default=2.0, help="Multiplier for walk count sweep")
    parser.add_argument("--seeds", nargs="+", type=int, default=[123], help="Random seeds to evaluate")
    parser.add_argument("--tolerance", type=float, default=1e-4, help="Stop once mean error is below this")
    parser.add_argument(
        "--min-improvement",
        type=float,
        default=1e-5,
        help="Minimum mean-error improvement required to keep tightening the knob",
    )
    parser.add_argument(
        "--max-stalled",
        type=int,
        default=2,
        help="Number of consecutive non-improving steps before stopping",
    )
    parser.add_argument("--max_walk_steps", type=int, default=1_000_000)
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path("logs/calibration"),
        help="Directory for per-run logs",
    )
    parser.add_argument(
        "--summary-json",
        type=Path,
        default=None,
        help="Optional path to export trial metadata as JSON",
    )
    return parser.parse_args(argv)


def _rmax_values(start: float, minimum: float, factor: float) -> Sequence[float]:
    if start <= 0 or minimum <= 0:
        raise ValueError("rmax values must be positive")
    if factor <= 1:
        raise ValueError("rmax-factor must be > 1")
    if minimum > start:
        raise ValueError("rmax-min must be less than or equal to rmax-start")
    values = [start]
    current = start
    while current / factor >= minimum * (1 - 1e-12):
        current = current / factor
        values.append(current)
    return values


def _times_values(start: int, max_value: int, factor: float) -> Sequence[int]:
    if start <= 0:
        raise ValueError("times-start must be positive")
    if max_value < start:
        raise ValueError("times-max must be greater than or equal to times-start")
    values = [start]
    current = start
    while current < max_value:
        next_value = int(math.ceil(current * factor))
        if next_value <= current:
            next_value = current + 1
        if next_value > max_value:
            next_value = max_value
        values.append(next_value)
        current = next_value
    return values


def _format_run_name(graph_stem: str, algorithm: str, knob: float, seed: int) -> str:
    knob_part = f"{knob:.3g}".replace(".", "p").replace("-", "m")
    return f"{graph_stem}_{algorithm}_{knob_part}_seed{seed}"


def calibrate(args: argparse.Namespace) -> list[TrialResult]:
    graph_path: Path = args.path
    target = args.target
    algorithm = Variant(args.algorithm)
    tolerance: float = args.tolerance
    min_improvement: float = args.min_improvement
    max_stalled: int = max(1, args.max_stalled)
    log_dir: Path = args.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    if algorithm is Variant.PUSH:
        knobs: Sequence[float] = _rmax_values(args.rmax_start, args.rmax_min, args.rmax_factor)
        # push is deterministic, extra seeds would only repeat the same run
        seeds: Sequence[int] = args.seeds[:1]
    else:
        knobs = _times_values(args.times_start, args.times_max, args.times_factor)
        seeds = args.seeds

    results: list[TrialResult] = []
    best_mean_error = math.inf
    stalled_steps = 0
    for knob in knobs:
        knob_results: list[TrialResult] = []
        for seed in seeds:
            log_path = log_dir / f"{_format_run_name(graph_path.stem, algorithm.value, knob, seed)}.log"
            estimate, duration = run_rdist_logged(
                graph_path=graph_path,
                variant=algorithm.value,
                s=args.source,
                t=args.target_node,
                v=args.landmark,
                rmax=float(knob),
                times=int(knob),
                implementation=args.implementation,
                seed=seed,
                log_path=log_path,
                max_walk_steps=args.max_walk_steps,
            )
            metrics = error_metrics(estimate, target)
            knob_results.append(
                TrialResult(
                    algorithm=algorithm.value,
                    knob=knob,
                    seed=seed,
                    estimate=estimate,
                    error=metrics.absolute,
                    relative_error=metrics.relative,
                    duration=duration,
                    log_path=str(log_path),
                )
            )
            print(
                f"{algorithm.value} knob={knob:.3g} seed={seed} "
                f"estimate={estimate:.6f} error={metrics.absolute:.6g} duration={duration:.3f}s"
            )
        results.extend(knob_results)

        converged = [trial.error for trial in knob_results if trial.converged]
        # a knob where every walk run hit the step cap counts as a stalled step
        mean_error = statistics.fmean(converged) if converged else math.inf
        if mean_error < best_mean_error - min_improvement:
            best_mean_error = mean_error
            stalled_steps = 0
        else:
            stalled_steps += 1

        print(
            f"-> mean error {mean_error:.6g} across {len(knob_results)} seed(s); "
            f"best so far {best_mean_error:.6g}"
        )
        if mean_error <= tolerance:
            print(f"Tolerance reached (<= {tolerance}); stopping sweep")
            break
        if stalled_steps >= max_stalled:
            print(f"No significant improvement in {stalled_steps} consecutive steps; stopping sweep")
            break
    return results


def _mean_or_nan(values: Sequence[float]) -> float:
    return statistics.fmean(values) if values else math.nan


def summarize(results: Sequence[TrialResult]) -> list[dict[str, object]]:
    """Aggregate trials per knob value, best first.

    Non-converged walk trials are counted but kept out of the error averages;
    a knob with no converged trial sorts last.
    """
    buckets: dict[float, list[TrialResult]] = defaultdict(list)
    for trial in results:
        buckets[trial.knob].append(trial)

    summaries: list[dict[str, object]] = []
    for knob, trials in buckets.items():
        converged = [trial for trial in trials if trial.converged]
        estimates = [trial.estimate for trial in converged]
        summaries.append(
            {
                "algorithm": trials[0].algorithm,
                "knob": knob,
                "seeds": [trial.seed for trial in trials],
                "non_converged": len(trials) - len(converged),
                "mean_estimate": _mean_or_nan(estimates),
                "stdev_estimate": statistics.pstdev(estimates) if len(estimates) > 1 else 0.0,
                "mean_error": _mean_or_nan([trial.error for trial in converged]),
                "mean_relative_error": _mean_or_nan([trial.relative_error for trial in converged]),
                "mean_duration": statistics.fmean(trial.duration for trial in trials),
                "logs": [trial.log_path for trial in trials],
            }
        )

    def rank(entry: dict[str, object]) -> tuple[float, float]:
        error = float(entry["mean_error"])
        return (math.inf if math.isnan(error) else error, float(entry["mean_duration"]))

    summaries.sort(key=rank)
    return summaries


def _finite_or_none(value: object) -> object:
    # NaN and inf are not valid JSON
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _finite_or_none(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_finite_or_none(item) for item in value]
    return value


def write_summary_json(path: Path, target: float, results: Sequence[TrialResult], summaries: list) -> None:
    payload = {
        "target": target,
        "results": [asdict(trial) for trial in results],
        "summaries": summaries,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(_finite_or_none(payload), indent=2, sort_keys=True), encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    results = calibrate(args)
    if not results:
        print("No calibration runs executed; check input parameters")
        return 1

    summaries = summarize(results)
    knob_name = "rmax" if args.algorithm == Variant.PUSH.value else "times"
    print(f"\n=== {args.algorithm} calibration against R={args.target} ===")
    for entry in summaries[:5]:
        metrics = ErrorMetrics(absolute=entry["mean_error"], relative=entry["mean_relative_error"])
        print(
            f"{knob_name}={entry['knob']:.3g} {format_error_metrics(metrics)} "
            f"mean_estimate={entry['mean_estimate']:.6f} non_converged={entry['non_converged']} "
            f"runtime={entry['mean_duration']:.3f}s"
        )

    best = summaries[0]
    if math.isnan(float(best["mean_error"])):
        print("\nNo configuration converged")
        return 1
    print(f"\nBest {knob_name}: {best['knob']:.3g} (mean error {best['mean_error']:.6g})")

    if args.summary_json is not None:
        write_summary_json(args.summary_json, args.target, results, summaries)
        print(f"Wrote summary JSON to {args.summary_json}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
