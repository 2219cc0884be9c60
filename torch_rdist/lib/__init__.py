"""Core resistance distance library modules."""

from .checkpoint import Checkpoint, MessageType, TaskMessage
from .cli import main as cli_main
from .config import Implementation, PushParams, RuntimeConfig, Variant, WalkParams
from .engine import ResistanceEngine
from .errors import ComputationCancelled, DomainError, EngineError, GraphParseError
from .estimator import ComputationResult, compute_resistance, estimate
from .generators import generate_graph
from .graph import Graph
from .graph_loader import load_graph, load_graphml, parse_edge_list
from .metrics import ErrorMetrics, error_metrics
from .run_rdist_logged import run_rdist_logged

__all__ = [
    "Checkpoint",
    "MessageType",
    "TaskMessage",
    "cli_main",
    "Implementation",
    "PushParams",
    "RuntimeConfig",
    "Variant",
    "WalkParams",
    "ResistanceEngine",
    "ComputationCancelled",
    "DomainError",
    "EngineError",
    "GraphParseError",
    "ComputationResult",
    "compute_resistance",
    "estimate",
    "generate_graph",
    "Graph",
    "load_graph",
    "load_graphml",
    "parse_edge_list",
    "ErrorMetrics",
    "error_metrics",
    "run_rdist_logged",
]
