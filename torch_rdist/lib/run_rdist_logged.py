from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from tqdm import tqdm

from .checkpoint import MessageType
from .config import PushParams, RuntimeConfig, Variant, WalkParams
from .engine import ResistanceEngine
from .errors import ComputationCancelled, EngineError
from .graph_loader import find_max_degree_node, load_graph, validate_graph
from .logging import capture_to_file


def log_factory(output_path: Path):
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("", encoding="utf-8")
    # append mode, the package file handler writes to the same file
    log_handle = output_path.open("a", encoding="utf-8")

    def _log(message: str) -> None:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{timestamp}] {message}"
        print(line, flush=True)
        log_handle.write(line + "\n")
        log_handle.flush()

    return _log, log_handle


def run_rdist_logged(
    graph_path: Path,
    variant: str,
    s: int,
    t: int,
    v: int | None,
    rmax: float,
    times: int,
    implementation: str,
    seed: int | None,
    log_path: Path,
    max_walk_steps: int = 1_000_000,
    timeout: float | None = None,
) -> tuple[float, float]:
    """Run one estimate through a :class:`ResistanceEngine`, logging its progress.

    Returns ``(distance, elapsed_seconds)``; errors reported by the engine are
    logged and re-raised.
    """
    log, handle = log_factory(log_path)
    try:
        graph = load_graph(graph_path)
        validate_graph(graph)
        landmark = v if v is not None else find_max_degree_node(graph)
        if Variant(variant) is Variant.PUSH:
            params = PushParams(s=s, t=t, v=landmark, rmax=rmax)
        else:
            params = WalkParams(s=s, t=t, v=landmark, times=times)
        config = RuntimeConfig(
            implementation=implementation,
            seed=seed,
            max_walk_steps=max_walk_steps,
        )

        log(f"Starting {variant} ({implementation}) run")
        log(f"Graph: {graph_path}")
        log(f"Nodes: {graph.n}, arcs: {graph.num_arcs}")
        log(f"s={s} t={t} v={landmark} (degree {graph.degree(landmark)})")
        if isinstance(params, PushParams):
            log(f"rmax: {rmax}")
        else:
            log(f"Walks per endpoint: {times}, step cap: {max_walk_steps}")
        if seed is not None:
            log(f"Seed set to {seed}")

        with capture_to_file(log_path), ResistanceEngine(config, max_workers=1) as engine:
            task_id = engine.compute(variant, graph, params)
            log(f"Submitted task {task_id}")
            deadline = None if timeout is None else time.monotonic() + timeout
            last_logged = -10.0

            with tqdm(
                total=100.0,
                desc=f"{variant} {implementation}",
                unit="%",
                file=sys.stdout,
                leave=True,
                dynamic_ncols=True,
            ) as progress_bar:
                while True:
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        engine.cancel(task_id)
                        log(f"Timed out after {timeout}s; task {task_id} cancelled")
                        raise ComputationCancelled(f"Task {task_id} timed out")
                    message = engine.get_message(timeout=remaining)
                    if message is None:
                        continue
                    if message.type is MessageType.PROGRESS:
                        progress_bar.update(message.progress - progress_bar.n)
                        if message.progress - last_logged >= 10.0:
                            last_logged = message.progress
                            log(f"Progress {message.progress:.1f}% | {message.message}")
                        continue
                    if message.type is MessageType.ERROR:
                        log(f"Task failed ({message.error_kind}): {message.error}")
                        # re-raise the original exception from the worker
                        engine.result(task_id)
                        raise EngineError(message.error or "Task failed")
                    progress_bar.update(100.0 - progress_bar.n)
                    result = message.result
                    break

        log(f"Statistics: pushes={result.statistics.push_count} walks={result.statistics.walk_count} "
            f"steps={result.statistics.walk_steps}")
        if not result.converged:
            log("Random walks did not converge; estimate is NaN")
        log(f"Completed run in {result.elapsed:.4f} seconds, estimate={result.distance}")
        return result.distance, result.elapsed
    finally:
        handle.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run one resistance distance estimate with logging")
    parser.add_argument("--path", required=True, type=Path, help="Edge list or .graphml file")
    parser.add_argument("--algorithm", choices=[item.value for item in Variant], default=Variant.PUSH.value)
    parser.add_argument("--implementation", choices=["reference", "optimized"], default="optimized")
    parser.add_argument("-s", "--source", type=int, required=True)
    parser.add_argument("-t", "--target", type=int, required=True)
    parser.add_argument("-v", "--landmark", type=int, default=None)
    parser.add_argument("--rmax", type=float, default=1e-6)
    parser.add_argument("--times", type=int, default=10000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--max_walk_steps", type=int, default=1_000_000)
    parser.add_argument("--timeout", type=float, default=None, help="Cancel the run after this many seconds")
    parser.add_argument(
        "--log", type=Path, default=Path("logs/rdist_run.log"), help="Log file destination"
    )
    args = parser.parse_args(argv)

    run_rdist_logged(
        graph_path=args.path,
        variant=args.algorithm,
        s=args.source,
        t=args.target,
        v=args.landmark,
        rmax=args.rmax,
        times=args.times,
        implementation=args.implementation,
        seed=args.seed,
        log_path=args.log,
        max_walk_steps=args.max_walk_steps,
        timeout=args.timeout,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
