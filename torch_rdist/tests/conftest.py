from __future__ import annotations

import pytest

from torch_rdist.lib.graph import Graph


@pytest.fixture
def cycle4() -> Graph:
    # 0-1-2-3-0, every node has degree 2
    return Graph.from_edges([(0, 1), (1, 2), (2, 3), (3, 0)], 4)


@pytest.fixture
def path3() -> Graph:
    return Graph.from_edges([(0, 1), (1, 2)], 3)


@pytest.fixture
def path5() -> Graph:
    return Graph.from_edges([(i, i + 1) for i in range(4)], 5)


@pytest.fixture
def complete5() -> Graph:
    return Graph.from_edges([(i, j) for i in range(5) for j in range(i + 1, 5)], 5)


@pytest.fixture
def with_isolated() -> Graph:
    # node 3 has no edges
    return Graph.from_edges([(0, 1), (1, 2), (2, 0)], 4)


@pytest.fixture
def two_components() -> Graph:
    return Graph.from_edges([(0, 1), (1, 0), (2, 3)], 4)
