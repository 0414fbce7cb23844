"""Schedule quality metrics, algorithm comparison and export."""

import csv
import json
import random
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional

from .models import ScheduledTask
from .scheduler import Placement, ScheduleResult, schedule
from .taskgraph import QueuePolicy, TaskGraph
from .topology import Topology


def total_schedule_time(topology: Topology) -> int:
    """Latest task end time over all compute nodes of the last run."""
    return max((node.last_task_end_time for node in topology), default=0)


@dataclass
class ScheduleMetrics:
    """Quality ratios of one schedule."""

    total_time: int
    sequential_time: int
    critical_time: int
    node_count: int
    speedup: float  # Kp: sequential time / total time
    efficiency: float  # Ke: speedup / node count
    algorithm_efficiency: float  # Kea: critical time / total time


def evaluate(task_graph: TaskGraph, topology: Topology, result: Optional[ScheduleResult] = None) -> ScheduleMetrics:
    """Compute quality ratios for the schedule currently held by ``topology``.

    Args:
        task_graph: The scheduled task graph
        topology: Topology the graph was scheduled on
        result: Use this result's makespan instead of reading the nodes

    Returns:
        ScheduleMetrics, with zero ratios for an empty schedule
    """
    total = result.makespan if result is not None else total_schedule_time(topology)
    sequential = task_graph.sequential_time()
    critical = task_graph.critical_time()
    node_count = len(topology)

    speedup = sequential / total if total else 0.0
    return ScheduleMetrics(
        total_time=total,
        sequential_time=sequential,
        critical_time=critical,
        node_count=node_count,
        speedup=speedup,
        efficiency=speedup / node_count if node_count else 0.0,
        algorithm_efficiency=critical / total if total else 0.0,
    )


@dataclass
class AlgorithmComparison:
    """Metrics of one placement and queue policy combination."""

    placement: str
    policy: str
    total_time: int
    speedup: float
    efficiency: float
    algorithm_efficiency: float

    @property
    def label(self) -> str:
        return f"{self.placement}/{self.policy}"


def compare_algorithms(
    task_graph: TaskGraph,
    topology: Topology,
    link_count: int = 1,
    duplex: bool = False,
    seed: Optional[int] = None,
) -> List[AlgorithmComparison]:
    """Schedule the same inputs with every placement and queue policy.

    The topology is left holding the schedule of the last combination.
    """
    rows = []
    for placement in Placement:
        for policy in QueuePolicy:
            result = schedule(
                task_graph,
                topology,
                placement=placement,
                link_count=link_count,
                duplex=duplex,
                policy=policy,
                rng=random.Random(seed),
            )
            metrics = evaluate(task_graph, topology, result)
            rows.append(
                AlgorithmComparison(
                    placement=placement.value,
                    policy=policy.value,
                    total_time=metrics.total_time,
                    speedup=metrics.speedup,
                    efficiency=metrics.efficiency,
                    algorithm_efficiency=metrics.algorithm_efficiency,
                )
            )
    return rows


@dataclass
class TaskMetrics:
    """Metrics for a single task."""

    task_id: int
    node_id: int
    scheduled_start: int
    scheduled_end: int
    duration: int
    actual_start: int
    actual_end: int
    wait_time: int
    start_delta: int  # actual_start - scheduled_start
    end_delta: int  # actual_end - scheduled_end


class MetricsCollector:
    """Collects per task timings and exports schedule reports."""

    def __init__(self):
        self.task_metrics: Dict[int, TaskMetrics] = {}
        self._completion_order: List[int] = []

    def record_task_completion(self, task: ScheduledTask):
        """Record metrics when a task completes.

        Args:
            task: The completed scheduled task
        """
        actual_start = task.actual_start if task.actual_start is not None else task.start
        actual_end = task.actual_end if task.actual_end is not None else task.end

        self.task_metrics[task.task_id] = TaskMetrics(
            task_id=task.task_id,
            node_id=task.node_id,
            scheduled_start=task.start,
            scheduled_end=task.end,
            duration=task.duration,
            actual_start=actual_start,
            actual_end=actual_end,
            wait_time=task.wait_time,
            start_delta=actual_start - task.start,
            end_delta=actual_end - task.end,
        )
        self._completion_order.append(task.task_id)

    def record_result(self, result: ScheduleResult):
        """Record every task of a result that was not replayed."""
        for entry in result.tasks.values():
            self.record_task_completion(entry)

    @property
    def completion_order(self) -> List[int]:
        return list(self._completion_order)

    def get_summary(self, result: ScheduleResult, metrics: ScheduleMetrics, replay_makespan: Optional[int] = None) -> dict:
        """Generate a summary of a scheduling run.

        Args:
            result: The schedule
            metrics: Quality ratios of the schedule
            replay_makespan: Makespan observed by a replay, if one ran

        Returns:
            Summary dictionary
        """
        summary = {
            "placement": result.placement.value,
            "queue_policy": result.policy.value if result.policy else None,
            "link_count": result.link_count,
            "duplex": result.duplex,
            "num_tasks": len(result.tasks),
            "num_transmissions": len(result.transmissions),
            "metrics": asdict(metrics),
        }
        if replay_makespan is not None:
            summary["replay_makespan"] = replay_makespan
            summary["makespan_difference"] = replay_makespan - metrics.total_time
        return summary

    def export_json(self, filepath: str, summary: Optional[dict] = None, result: Optional[ScheduleResult] = None):
        """Export metrics to a JSON file.

        Args:
            filepath: Output file path
            summary: Optional summary to include
            result: Optional schedule whose transmissions are included
        """
        output = {
            "summary": summary or {},
            "tasks": [asdict(m) for m in self.task_metrics.values()],
            "transmissions": [asdict(t) for t in result.transmissions] if result else [],
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w") as f:
            json.dump(output, f, indent=2)

    def export_csv(self, filepath: str):
        """Export per-task metrics to a CSV file.

        Args:
            filepath: Output file path
        """
        if not self.task_metrics:
            return

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)

        fieldnames = list(TaskMetrics.__dataclass_fields__)

        with open(filepath, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for metrics in self.task_metrics.values():
                writer.writerow(asdict(metrics))

    def print_summary(self, result: ScheduleResult, metrics: ScheduleMetrics, replay_makespan: Optional[int] = None):
        """Print a human-readable summary to the console."""
        summary = self.get_summary(result, metrics, replay_makespan)

        print("\n" + "=" * 60)
        print("SCHEDULE RESULTS")
        print("=" * 60)

        print(f"\nAlgorithm: {summary['placement']} / {summary['queue_policy']}")
        print(f"Links per node: {summary['link_count']} ({'duplex' if summary['duplex'] else 'simplex'})")
        print(f"Tasks scheduled: {summary['num_tasks']}")
        print(f"Transmissions:   {summary['num_transmissions']}")

        print("\nSCHEDULE TIME:")
        print(f"  Total schedule time: {metrics.total_time}")
        print(f"  Sequential time:     {metrics.sequential_time}")
        print(f"  Critical path time:  {metrics.critical_time}")
        if replay_makespan is not None:
            print(f"  Replayed makespan:   {replay_makespan} ({summary['makespan_difference']:+d})")

        print("\nQUALITY:")
        print(f"  Speedup (Kp):              {metrics.speedup:.3f}")
        print(f"  Efficiency (Ke):           {metrics.efficiency:.3f}")
        print(f"  Algorithm efficiency (Kea): {metrics.algorithm_efficiency:.3f}")

        print("\nNODES:")
        by_node: Dict[int, List[TaskMetrics]] = {}
        for m in self.task_metrics.values():
            by_node.setdefault(m.node_id, []).append(m)
        for node_id in sorted(by_node):
            tasks = sorted(by_node[node_id], key=lambda m: m.scheduled_start)
            cells = ", ".join(f"{m.task_id}:[{m.scheduled_start},{m.scheduled_end})" for m in tasks)
            print(f"  N{node_id}: {cells}")

        print("\n" + "=" * 60)


def print_comparison(rows: List[AlgorithmComparison]):
    """Print the comparison table of ``compare_algorithms``."""
    print(f"\n{'algorithm':<32} {'T':>6} {'Kp':>7} {'Ke':>7} {'Kea':>7}")
    for row in rows:
        print(
            f"{row.label:<32} {row.total_time:>6} {row.speedup:>7.3f} "
            f"{row.efficiency:>7.3f} {row.algorithm_efficiency:>7.3f}"
        )
