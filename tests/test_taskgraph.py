import pytest

from tactsched.dag import CyclicGraphError, Direction, QueuePolicy, TaskGraphError

from .helpers import make_graph


@pytest.fixture
def chain_and_island():
    # 1 -> 2 -> 3 plus an unconnected heavy task 4
    return make_graph({1: 3, 2: 2, 3: 1, 4: 10}, [(1, 2, 1), (2, 3, 1)])


def test_three_task_cycle_is_reported():
    graph = make_graph({1: 1, 2: 1, 3: 1}, [(1, 2, 1), (2, 3, 1), (3, 1, 1)])

    report = graph.find_cycles()

    assert report.has_cycles
    assert report.cycles == [[1, 2, 3]]
    assert report.describe() == "Cycle #1: 1 2 3"
    assert graph.has_cycles()


def test_acyclic_graph_has_no_cycles(chain_graph, layered_graph):
    assert not chain_graph.has_cycles()
    assert not layered_graph.has_cycles()
    assert chain_graph.find_cycles().describe() == ""


def test_cycle_between_boundaries_reported_once():
    graph = make_graph({1: 1, 2: 1, 3: 1, 4: 1}, [(1, 2, 1), (2, 3, 1), (3, 2, 1), (3, 4, 1)])

    assert graph.find_cycles().cycles == [[2, 3]]


def test_cycle_detached_from_boundaries_is_found():
    graph = make_graph({1: 1, 2: 1, 3: 1, 4: 1}, [(1, 2, 1), (3, 4, 1), (4, 3, 1)])

    assert graph.find_cycles().cycles == [[3, 4]]


def test_critical_paths_follow_successors(chain_and_island):
    cp_time, cp_count = chain_and_island.calculate_critical_paths()

    assert (cp_time, cp_count) == (10, 3)
    tasks = chain_and_island.tasks
    assert (tasks[1].cp_time, tasks[1].cp_task_count) == (6, 3)
    assert (tasks[2].cp_time, tasks[2].cp_task_count) == (3, 2)
    assert (tasks[3].cp_time, tasks[3].cp_task_count) == (1, 1)
    assert (tasks[4].cp_time, tasks[4].cp_task_count) == (10, 1)


def test_critical_time_and_count_are_independent_maxima():
    # longest by time is 1 -> 4, longest by count is 1 -> 2 -> 3
    graph = make_graph({1: 1, 2: 1, 3: 1, 4: 9}, [(1, 2, 0), (2, 3, 0), (1, 4, 0)])

    graph.calculate_critical_paths()

    assert graph.tasks[1].cp_time == 10
    assert graph.tasks[1].cp_task_count == 3
    assert graph.critical_time() == 10


def test_reverse_critical_paths_exclude_the_task(chain_and_island):
    chain_and_island.calculate_critical_paths(Direction.PREDECESSORS, exclude_self=True)

    values = {t.task_id: (t.cp_time, t.cp_task_count) for t in chain_and_island}
    assert values == {1: (0, 0), 2: (3, 1), 3: (5, 2), 4: (0, 0)}


def test_critical_path_on_cyclic_graph_raises():
    graph = make_graph({1: 1, 2: 1}, [(1, 2, 1), (2, 1, 1)])

    with pytest.raises(CyclicGraphError) as exc_info:
        graph.calculate_critical_paths()
    assert sorted(exc_info.value.cycle) == [1, 2]


@pytest.mark.parametrize(
    "policy, expected",
    [
        (QueuePolicy.CRITICAL_PATH, [1, 4, 2, 3]),
        (QueuePolicy.OUT_DEGREE, [1, 2, 3, 4]),
        (QueuePolicy.REVERSE_CRITICAL_PATH, [1, 4, 2, 3]),
    ],
)
def test_queue_policies(chain_and_island, policy, expected):
    queue = chain_and_island.generate_queue(policy)

    assert queue.task_ids == expected
    assert sorted(queue) == sorted(chain_and_island.tasks)


def test_critical_path_priorities(chain_and_island):
    chain_and_island.generate_queue(QueuePolicy.CRITICAL_PATH)

    assert chain_and_island.tasks[1].priority == pytest.approx(0.6 + 1.0)
    assert chain_and_island.tasks[4].priority == pytest.approx(1.0 + 1 / 3)
    assert chain_and_island.tasks[3].priority == pytest.approx(0.1 + 1 / 3)


def test_out_degree_queue_puts_fan_out_first():
    graph = make_graph({1: 1, 2: 1, 3: 1, 4: 1}, [(2, 1, 1), (3, 1, 1), (3, 4, 1)])

    assert graph.generate_queue(QueuePolicy.OUT_DEGREE).task_ids == [3, 2, 1, 4]


@pytest.mark.parametrize("policy", list(QueuePolicy))
def test_queue_generation_is_repeatable(layered_graph, policy):
    first = layered_graph.generate_queue(policy)
    second = layered_graph.generate_queue(policy)

    assert first.task_ids == second.task_ids
    assert first.report() == second.report()


def test_queue_report(chain_and_island):
    report = chain_and_island.generate_queue(QueuePolicy.CRITICAL_PATH).report()

    assert report.startswith("Queue (type = 1)")
    assert "T = 10" in report
    assert "N = 3" in report
    assert "T1 = 6" in report
    assert report.splitlines()[-1] == "G1(1.600) | G4(1.333) | G2(0.967) | G3(0.433)"

    out_degree = chain_and_island.generate_queue(QueuePolicy.OUT_DEGREE).report()
    assert out_degree.splitlines()[-1] == "G1(1) | G2(1) | G3(0) | G4(0)"
    assert out_degree.startswith("Queue (type = 12)")


def test_zero_cost_graph_queue():
    graph = make_graph({1: 0, 2: 0}, [(1, 2, 0)])

    queue = graph.generate_queue(QueuePolicy.CRITICAL_PATH)

    assert queue.task_ids == [1, 2]
    assert graph.tasks[1].priority == pytest.approx(1.0)


def test_queue_policy_codes():
    assert QueuePolicy.from_code(1) is QueuePolicy.CRITICAL_PATH
    assert QueuePolicy.from_code(12) is QueuePolicy.OUT_DEGREE
    assert QueuePolicy.from_code(16) is QueuePolicy.REVERSE_CRITICAL_PATH
    assert QueuePolicy.OUT_DEGREE.code == 12
    with pytest.raises(ValueError):
        QueuePolicy.from_code(5)


def test_graph_editing(chain_graph):
    assert chain_graph.weight(1, 2) == 4
    assert chain_graph.sequential_time() == 6

    with pytest.raises(TaskGraphError):
        chain_graph.add_dependency(1, 2, 1)
    with pytest.raises(TaskGraphError):
        chain_graph.add_dependency(2, 2, 1)
    with pytest.raises(TaskGraphError):
        chain_graph.add_dependency(1, 99, 1)
    with pytest.raises(TaskGraphError):
        chain_graph.add_task(-1)
    with pytest.raises(TaskGraphError):
        chain_graph.add_task(1, task_id=2)

    chain_graph.remove_task(3)
    assert 3 not in chain_graph
    assert chain_graph.tasks[2].successors == []
    assert (2, 3) not in chain_graph.edges
    assert chain_graph.add_task(7).task_id == 3


def test_remove_dependency(chain_graph):
    chain_graph.remove_dependency(1, 2)

    assert chain_graph.tasks[1].successors == []
    assert chain_graph.tasks[2].predecessors == []
    with pytest.raises(TaskGraphError):
        chain_graph.weight(1, 2)
