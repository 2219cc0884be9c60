from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Statistics:
    """Work counters collected while an estimator runs."""

    push_count: int = 0
    walk_count: int = 0
    walk_steps: int = 0
    non_converged_walks: int = 0
    longest_walk: int = 0

    def add_pushes(self, value: int) -> None:
        self.push_count += int(value)

    def add_walks(self, count: int, steps: int) -> None:
        self.walk_count += int(count)
        self.walk_steps += int(steps)

    def record_walk_length(self, value: int) -> None:
        self.longest_walk = max(self.longest_walk, int(value))

    def incr_non_converged(self) -> None:
        self.non_converged_walks += 1

    def summary(self) -> str:
        return (
            "Statistics:\n"
            f"Number of pushes: {self.push_count}\n"
            f"Number of walks: {self.walk_count}\n"
            f"Total walk steps: {self.walk_steps}\n"
            f"Longest walk: {self.longest_walk}\n"
            f"Non-converged walks: {self.non_converged_walks}\n"
        )
