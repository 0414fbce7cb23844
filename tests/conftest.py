import pytest

from .helpers import make_graph, make_topology


@pytest.fixture(scope="function")
def single_node():
    return make_topology(1, [])


@pytest.fixture(scope="function")
def two_nodes():
    return make_topology(2, [(0, 1)])


@pytest.fixture(scope="function")
def line_of_three():
    return make_topology(3, [(0, 1), (1, 2)])


@pytest.fixture(scope="function")
def ring_with_chord():
    return make_topology(5, [(0, 1), (1, 2), (2, 3), (3, 4), (4, 0), (0, 2)])


@pytest.fixture(scope="function")
def chain_graph():
    return make_graph({1: 3, 2: 2, 3: 1}, [(1, 2, 4), (2, 3, 2)])


@pytest.fixture(scope="function")
def pair_graph():
    return make_graph({1: 5, 2: 3}, [(1, 2, 2)])


@pytest.fixture(scope="function")
def join_graph():
    return make_graph({1: 2, 2: 2, 3: 1}, [(1, 3, 2), (2, 3, 2)])


@pytest.fixture(scope="function")
def layered_graph():
    costs = {0: 2, 1: 3, 2: 1, 3: 4, 4: 2, 5: 3, 6: 1, 7: 2}
    edges = [
        (0, 1, 3),
        (0, 2, 1),
        (1, 3, 2),
        (2, 3, 4),
        (2, 4, 1),
        (3, 5, 2),
        (4, 5, 3),
        (4, 6, 1),
        (5, 7, 2),
        (6, 7, 1),
    ]
    return make_graph(costs, edges)
