from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import torch


class Variant(str, Enum):
    PUSH = "push"
    RANDOM_WALK = "randomWalk"


class Implementation(str, Enum):
    REFERENCE = "reference"
    OPTIMIZED = "optimized"


def _check_node(name: str, node: int, n: int) -> None:
    if not 0 <= int(node) < n:
        raise ValueError(f"{name}={node} is not a node of a graph with {n} nodes")


@dataclass(frozen=True)
class PushParams:
    """Query for the push estimator; ``rmax`` trades accuracy for work."""

    s: int
    t: int
    v: int
    rmax: float = 1e-6

    variant = Variant.PUSH

    def validate(self, n: int) -> None:
        for name in ("s", "t", "v"):
            _check_node(name, getattr(self, name), n)
        if not self.rmax > 0:
            raise ValueError("rmax must be > 0")


@dataclass(frozen=True)
class WalkParams:
    """Query for the random-walk estimator; ``times`` walks start at each of s and t."""

    s: int
    t: int
    v: int
    times: int = 10000

    variant = Variant.RANDOM_WALK

    def validate(self, n: int) -> None:
        for name in ("s", "t", "v"):
            _check_node(name, getattr(self, name), n)
        if self.times < 1:
            raise ValueError("times must be >= 1")


AlgorithmParams = Union[PushParams, WalkParams]


@dataclass
class RuntimeConfig:
    """Holds runtime configuration options shared by both estimators."""

    implementation: str = Implementation.OPTIMIZED.value
    seed: Optional[int] = None
    max_walk_steps: int = 1_000_000
    checkpoint_interval: int = 1024
    device: str = "cpu"

    def torch_device(self) -> torch.device:
        if self.device == "cuda" and not torch.cuda.is_available():
            return torch.device("cpu")
        return torch.device(self.device)

    def make_generator(self) -> torch.Generator:
        generator = torch.Generator(device="cpu")
        if self.seed is not None:
            generator.manual_seed(self.seed)
        else:
            generator.seed()
        return generator

    def validate(self) -> None:
        if self.implementation not in {item.value for item in Implementation}:
            raise ValueError("implementation must be one of {reference, optimized}")
        if self.max_walk_steps < 1:
            raise ValueError("max_walk_steps must be >= 1")
        if self.checkpoint_interval < 1:
            raise ValueError("checkpoint_interval must be >= 1")
        if self.device not in {"cpu", "cuda"}:
            raise ValueError("device must be one of {cpu, cuda}")
