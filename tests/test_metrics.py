import csv
import json

import pytest

from tactsched.dag import (
    MetricsCollector,
    Placement,
    QueuePolicy,
    compare_algorithms,
    evaluate,
    replay,
    schedule,
)
from tactsched.dag.metrics import print_comparison

from .helpers import make_graph


def test_single_node_chain_is_fully_efficient(chain_graph, single_node):
    schedule(chain_graph, single_node)

    metrics = evaluate(chain_graph, single_node)

    assert metrics.total_time == 6
    assert metrics.sequential_time == 6
    assert metrics.critical_time == 6
    assert metrics.speedup == pytest.approx(1.0)
    assert metrics.efficiency == pytest.approx(1.0)
    assert metrics.algorithm_efficiency == pytest.approx(1.0)


def test_efficiency_divides_by_node_count(pair_graph, two_nodes):
    result = schedule(pair_graph, two_nodes)

    metrics = evaluate(pair_graph, two_nodes, result)

    assert metrics.total_time == 8
    assert metrics.speedup == pytest.approx(1.0)
    assert metrics.efficiency == pytest.approx(0.5)


def test_parallel_sources_speed_up(two_nodes):
    graph = make_graph({1: 4, 2: 4}, [])
    schedule(graph, two_nodes)

    metrics = evaluate(graph, two_nodes)

    assert metrics.total_time == 4
    assert metrics.speedup == pytest.approx(2.0)
    assert metrics.efficiency == pytest.approx(1.0)
    assert metrics.algorithm_efficiency == pytest.approx(1.0)


def test_compare_algorithms_covers_every_combination(layered_graph, ring_with_chord, capsys):
    rows = compare_algorithms(layered_graph, ring_with_chord, link_count=2, seed=1)

    assert len(rows) == len(Placement) * len(QueuePolicy)
    assert rows[0].label == "random/critical-path"
    assert rows[-1].label == "greedy/reverse-critical-path"
    assert all(row.total_time >= layered_graph.critical_time() for row in rows)

    print_comparison(rows)
    assert "greedy/out-degree" in capsys.readouterr().out


def test_export_json_and_csv(join_graph, line_of_three, tmp_path):
    result = schedule(join_graph, line_of_three)
    metrics = evaluate(join_graph, line_of_three, result)
    collector = MetricsCollector()
    replay(join_graph, result, collector)
    summary = collector.get_summary(result, metrics, replay_makespan=7)

    json_path = tmp_path / "out" / "schedule_results.json"
    csv_path = tmp_path / "out" / "task_metrics.csv"
    collector.export_json(str(json_path), summary, result)
    collector.export_csv(str(csv_path))

    data = json.loads(json_path.read_text())
    assert data["summary"]["placement"] == "greedy"
    assert data["summary"]["queue_policy"] == "critical-path"
    assert data["summary"]["makespan_difference"] == 0
    assert data["summary"]["metrics"]["total_time"] == 7
    assert {task["task_id"] for task in data["tasks"]} == {1, 2, 3}
    assert len(data["transmissions"]) == 2

    with open(csv_path, newline="") as f:
        rows = list(csv.DictReader(f))
    assert [row["task_id"] for row in rows] == [str(t) for t in collector.completion_order]
    assert rows[0]["start_delta"] == "0"


def test_record_result_without_replay(chain_graph, single_node):
    result = schedule(chain_graph, single_node)
    collector = MetricsCollector()

    collector.record_result(result)

    assert collector.task_metrics[2].actual_start == 3
    assert collector.task_metrics[2].wait_time == 0


def test_print_summary(chain_graph, single_node, capsys):
    result = schedule(chain_graph, single_node)
    metrics = evaluate(chain_graph, single_node, result)
    collector = MetricsCollector()
    collector.record_result(result)

    collector.print_summary(result, metrics)

    out = capsys.readouterr().out
    assert "Total schedule time: 6" in out
    assert "N0: 1:[0,3), 2:[3,5), 3:[5,6)" in out
