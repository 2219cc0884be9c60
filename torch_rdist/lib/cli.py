from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, List

import torch

from .config import Implementation, PushParams, RuntimeConfig, Variant, WalkParams
from .errors import ResistanceError
from .estimator import compute_resistance
from .generators import available_generators, generate_graph
from .graph_loader import find_max_degree_node, load_graph, validate_graph
from .logging import set_global_log_level
from .metrics import format_error_metrics


def _parse_generator_params(items: List[str]) -> Dict[str, float]:
    params: Dict[str, float] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {item!r}")
        try:
            params[key] = int(raw)
        except ValueError:
            params[key] = float(raw)
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Torch resistance distance estimator")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-p", "--path", help="Path to an edge list or .graphml input file")
    source.add_argument(
        "--synthetic",
        choices=available_generators(),
        help="Generate a synthetic graph instead of reading a file",
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Synthetic generator parameter (repeatable)",
    )
    parser.add_argument(
        "-a",
        "--algorithm",
        default=Variant.PUSH.value,
        choices=[item.value for item in Variant],
        help="Estimator to run",
    )
    parser.add_argument(
        "--implementation",
        default=Implementation.OPTIMIZED.value,
        choices=[item.value for item in Implementation],
        help="Reference or optimized implementation",
    )
    parser.add_argument("-s", "--source", type=int, required=True, help="Node s")
    parser.add_argument("-t", "--target", type=int, required=True, help="Node t")
    parser.add_argument(
        "-v",
        "--landmark",
        type=int,
        default=None,
        help="Landmark node v (defaults to the max-degree node)",
    )
    parser.add_argument("--rmax", type=float, default=1e-6, help="Residual threshold for push")
    parser.add_argument("--times", type=int, default=10000, help="Walks per endpoint for randomWalk")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument(
        "--max_walk_steps",
        type=int,
        default=1_000_000,
        help="Per-walk step cap before a walk counts as non-converged",
    )
    parser.add_argument("--ground_truth", type=float, default=None, help="Reference value for error metrics")
    parser.add_argument(
        "--device",
        default="cuda" if torch.cuda.is_available() else "cpu",
        choices=["cpu", "cuda"],
        help="Execution device for the optimized random walks",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Library log level",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    set_global_log_level(getattr(logging, args.log_level))

    config = RuntimeConfig(
        implementation=args.implementation,
        seed=args.seed,
        max_walk_steps=args.max_walk_steps,
        device=args.device,
    )

    try:
        if args.synthetic is not None:
            graph = generate_graph(args.synthetic, seed=args.seed, **_parse_generator_params(args.param))
        else:
            graph = load_graph(args.path)
        validate_graph(graph)

        landmark = args.landmark if args.landmark is not None else find_max_degree_node(graph)
        if args.algorithm == Variant.PUSH.value:
            params = PushParams(s=args.source, t=args.target, v=landmark, rmax=args.rmax)
        else:
            params = WalkParams(s=args.source, t=args.target, v=landmark, times=args.times)

        result = compute_resistance(args.algorithm, graph, params, config, ground_truth=args.ground_truth)
    except (ResistanceError, ValueError, argparse.ArgumentTypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"\nGraph: {graph.n} nodes, {graph.num_arcs} arcs, landmark v={landmark}")
    if not result.converged:
        print("Random walks did not converge (landmark unreachable or step cap hit).")
    print(f"Resistance distance: {result.distance}")
    print(f"Elapsed: {result.elapsed:.6f} s\n")
    if result.metrics is not None:
        print(format_error_metrics(result.metrics))
    print(result.statistics.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
