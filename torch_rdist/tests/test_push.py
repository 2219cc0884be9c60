from __future__ import annotations

import threading
from typing import List

import pytest

from torch_rdist.lib.checkpoint import Checkpoint, MessageType, TaskMessage
from torch_rdist.lib.config import PushParams
from torch_rdist.lib.errors import ComputationCancelled, DomainError
from torch_rdist.lib.generators import generate_graph
from torch_rdist.lib.graph import Graph
from torch_rdist.lib.push import push_optimized, push_reference
from torch_rdist.lib.stats import Statistics

PUSH_IMPLEMENTATIONS = [push_reference, push_optimized]


class ListChannel:
    def __init__(self) -> None:
        self.messages: List[TaskMessage] = []

    def publish(self, message: TaskMessage) -> bool:
        self.messages.append(message)
        return True


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_four_cycle_matches_closed_form(push, cycle4: Graph) -> None:
    # d(n - d) / n with n=4, d=1
    value = push(cycle4, PushParams(s=0, t=1, v=2, rmax=1e-8))
    assert value == pytest.approx(0.75, abs=1e-6)


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
@pytest.mark.parametrize("v", range(5))
@pytest.mark.parametrize("s", range(4))
def test_adjacent_path_nodes_have_unit_resistance_for_any_landmark(push, path5: Graph, s: int, v: int) -> None:
    value = push(path5, PushParams(s=s, t=s + 1, v=v, rmax=1e-10))
    assert value == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_self_distance_is_exactly_zero(push) -> None:
    graph = generate_graph("lobster", seed=3, spine_length=8)
    for s in range(0, graph.n, 3):
        for v in (0, graph.n - 1):
            if graph.degree(s) == 0:
                continue
            assert push(graph, PushParams(s=s, t=s, v=v, rmax=1e-4)) == 0.0


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_symmetry(push) -> None:
    graph = generate_graph("grid", rows=4, cols=4)
    forward = push(graph, PushParams(s=0, t=10, v=15, rmax=1e-9))
    backward = push(graph, PushParams(s=10, t=0, v=15, rmax=1e-9))
    assert forward == pytest.approx(backward, abs=1e-6)


@pytest.mark.parametrize("fixture_name, expected", [("cycle4", 0.75), ("path3", 1.0)])
def test_smaller_rmax_never_increases_error(request: pytest.FixtureRequest, fixture_name: str, expected: float) -> None:
    graph = request.getfixturevalue(fixture_name)
    v = graph.n - 1
    errors = [
        abs(push_optimized(graph, PushParams(s=0, t=1, v=v, rmax=rmax)) - expected)
        for rmax in (1e-1, 1e-2, 1e-4, 1e-6, 1e-8)
    ]
    for coarse, fine in zip(errors, errors[1:]):
        assert fine <= coarse + 1e-12


def test_fine_rmax_beats_coarse_rmax_on_complete_graph(complete5: Graph) -> None:
    # every pair of K_n is at resistance 2/n
    coarse = abs(push_optimized(complete5, PushParams(s=0, t=1, v=4, rmax=1e-1)) - 0.4)
    fine = abs(push_optimized(complete5, PushParams(s=0, t=1, v=4, rmax=1e-10)) - 0.4)
    assert fine < 1e-6
    assert fine <= coarse + 1e-7


def test_smaller_rmax_does_more_pushes(complete5: Graph) -> None:
    coarse, fine = Statistics(), Statistics()
    push_optimized(complete5, PushParams(s=0, t=1, v=4, rmax=1e-2), stats=coarse)
    push_optimized(complete5, PushParams(s=0, t=1, v=4, rmax=1e-8), stats=fine)
    assert fine.push_count > coarse.push_count


def test_reference_and_optimized_are_bit_identical() -> None:
    graph = generate_graph("random-tree", seed=11, n=40)
    s, t, v = 3, 17, 29
    for rmax in (1e-3, 1e-7):
        params = PushParams(s=s, t=t, v=v, rmax=rmax)
        assert push_reference(graph, params) == push_optimized(graph, params)


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_landmark_equal_to_endpoint(push, path3: Graph) -> None:
    # s == v leaves the s phase empty
    assert push(path3, PushParams(s=0, t=1, v=0, rmax=1e-10)) == pytest.approx(1.0, abs=1e-6)
    assert push(path3, PushParams(s=0, t=1, v=1, rmax=1e-10)) == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_self_loops_do_not_change_resistance(push) -> None:
    graph = Graph.build([(0, 0), (0, 1), (1, 0), (1, 2), (2, 1), (2, 2)], 3)
    assert push(graph, PushParams(s=0, t=1, v=2, rmax=1e-10)) == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_zero_degree_endpoint_is_a_domain_error(push, with_isolated: Graph) -> None:
    with pytest.raises(DomainError):
        push(with_isolated, PushParams(s=3, t=0, v=1, rmax=1e-6))
    with pytest.raises(DomainError):
        push(with_isolated, PushParams(s=0, t=3, v=1, rmax=1e-6))


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_push_does_not_mutate_graph(push, cycle4: Graph) -> None:
    arcs = cycle4.arcs
    push(cycle4, PushParams(s=0, t=1, v=2, rmax=1e-6))
    assert cycle4.arcs == arcs
    assert cycle4.degrees == (2, 2, 2, 2)


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_progress_is_monotone_and_reaches_100(push) -> None:
    graph = generate_graph("grid", rows=6, cols=6)
    channel = ListChannel()
    checkpoint = Checkpoint("task", channel, threading.Event(), interval=8)

    push(graph, PushParams(s=0, t=7, v=35, rmax=1e-8), checkpoint)

    values = [message.progress for message in channel.messages]
    assert all(message.type is MessageType.PROGRESS for message in channel.messages)
    assert values == sorted(values)
    assert values[-1] == 100.0
    assert all(0.0 <= value <= 100.0 for value in values)


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_cancelled_checkpoint_stops_push(push) -> None:
    graph = generate_graph("grid", rows=10, cols=10)
    cancel_event = threading.Event()
    cancel_event.set()
    channel = ListChannel()
    checkpoint = Checkpoint("task", channel, cancel_event, interval=1)

    with pytest.raises(ComputationCancelled):
        push(graph, PushParams(s=0, t=1, v=99, rmax=1e-9), checkpoint)
    assert channel.messages == []


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_isolated_landmark_is_a_domain_error(push, with_isolated: Graph) -> None:
    with pytest.raises(DomainError, match="v=3 has degree 0"):
        push(with_isolated, PushParams(s=0, t=1, v=3, rmax=1e-6))


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_unreachable_landmark_is_a_domain_error(push, two_components: Graph) -> None:
    with pytest.raises(DomainError, match="not reachable"):
        push(two_components, PushParams(s=0, t=1, v=2, rmax=1e-6))


@pytest.mark.parametrize("push", PUSH_IMPLEMENTATIONS)
def test_landmark_outside_a_cycle_component(push) -> None:
    # a 4-cycle plus one node that no edge touches
    graph = Graph.from_edges([(0, 1), (1, 2), (2, 3), (3, 0)], 5)
    with pytest.raises(DomainError):
        push(graph, PushParams(s=0, t=1, v=4, rmax=1e-6))
    graph = Graph.from_edges([(0, 1), (1, 2), (2, 3), (3, 0), (4, 5)], 6)
    with pytest.raises(DomainError):
        push(graph, PushParams(s=0, t=1, v=5, rmax=1e-6))
