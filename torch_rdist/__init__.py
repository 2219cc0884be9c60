from .lib.cli import main as cli_main
from .lib.config import PushParams, RuntimeConfig, Variant, WalkParams
from .lib.engine import ResistanceEngine
from .lib.estimator import compute_resistance, estimate
from .lib.graph import Graph
from .lib.graph_loader import load_graph, parse_edge_list

__all__ = [
    "estimate",
    "compute_resistance",
    "Graph",
    "PushParams",
    "WalkParams",
    "Variant",
    "RuntimeConfig",
    "ResistanceEngine",
    "load_graph",
    "parse_edge_list",
    "cli_main",
]
