import random

import pytest
import simpy

from tactsched.dag import (
    AssignmentEngine,
    MetricsCollector,
    Placement,
    ScheduleReplay,
    replay,
    schedule,
)

from .helpers import make_graph


@pytest.mark.parametrize("placement", list(Placement))
@pytest.mark.parametrize("link_count", [1, 2])
def test_replay_matches_schedule(layered_graph, ring_with_chord, placement, link_count):
    result = schedule(layered_graph, ring_with_chord, placement=placement, link_count=link_count, rng=random.Random(5))

    runner = replay(layered_graph, result)

    assert runner.violations() == []
    assert runner.makespan == result.makespan
    assert max(entry.actual_end for entry in result.tasks.values()) == result.makespan


def test_replay_follows_multi_hop_transfers(line_of_three):
    graph = make_graph({1: 2, 2: 1}, [(1, 2, 3)])
    engine = AssignmentEngine(line_of_three)
    engine.reset(graph)
    engine.assign_independent_task(graph.tasks[1])
    engine.assign_dependent_task(graph.tasks[2], target=line_of_three.get_node(2))

    runner = ScheduleReplay(simpy.Environment(), graph, engine.result)
    makespan = runner.run()

    assert makespan == 9
    assert runner.violations() == []
    entry = engine.result.tasks[2]
    assert (entry.actual_start, entry.actual_end) == (8, 9)
    # input arrives at 8, exactly when the task was scheduled
    assert entry.wait_time == 0


def test_replay_reports_shifted_tasks(pair_graph, two_nodes):
    result = schedule(pair_graph, two_nodes)
    # move task 2 before its input is available
    result.tasks[2].start = 3
    result.tasks[2].end = 6

    runner = replay(pair_graph, result)

    assert runner.violations() == ["Task 2 replayed at [5, 8) but was scheduled at [3, 6)"]


def test_replay_records_metrics(chain_graph, single_node):
    result = schedule(chain_graph, single_node)
    collector = MetricsCollector()

    replay(chain_graph, result, collector)

    assert collector.completion_order == [1, 2, 3]
    assert all(m.start_delta == 0 and m.end_delta == 0 for m in collector.task_metrics.values())
    assert collector.task_metrics[3].actual_end == 6


def test_zero_cost_task_does_not_wait_for_the_processor(two_nodes):
    graph = make_graph({1: 5, 2: 3, 3: 0}, [(2, 3, 0)])
    engine = AssignmentEngine(two_nodes)
    engine.reset(graph)
    engine.assign_independent_task(graph.tasks[1])
    engine.assign_independent_task(graph.tasks[2])
    entry = engine.assign_dependent_task(graph.tasks[3], target=two_nodes.get_node(0))
    # scheduled inside task 1's interval on the same node
    assert (entry.node_id, entry.start, entry.end) == (0, 3, 3)
    assert engine.result.tasks[1].node_id == 0

    runner = replay(graph, engine.result)

    assert runner.violations() == []
    assert (entry.actual_start, entry.actual_end) == (3, 3)
    assert runner.makespan == 5
