"""Orchestration of a complete scheduling run."""

import random
from typing import Optional

from .config import ScheduleConfig
from .errors import ValidationError
from .loaders import load_task_graph, load_topology
from .metrics import MetricsCollector, ScheduleMetrics, evaluate
from .replay import replay
from .scheduler import AssignmentEngine, ScheduleResult
from .taskgraph import TaskGraph, TaskQueue
from .topology import Topology
from .validation import ValidationStatus, validate


class SchedulingPipeline:
    """Loads inputs, validates them, builds the queue, schedules and reports.

    Validation failures stop the run before any scheduling happens and
    surface as ``ValidationError``.
    """

    def __init__(
        self,
        task_graph_path: str,
        topology_path: str,
        config: Optional[ScheduleConfig] = None,
    ):
        """Initialize the pipeline.

        Args:
            task_graph_path: Path to the task graph JSON file
            topology_path: Path to the topology JSON file
            config: Scheduling configuration
        """
        self.task_graph_path = task_graph_path
        self.topology_path = topology_path
        self.config = config or ScheduleConfig()
        self.config.validate()

        # Loaded data
        self.task_graph: Optional[TaskGraph] = None
        self.topology: Optional[Topology] = None

        # Run state
        self.status: Optional[ValidationStatus] = None
        self.queue: Optional[TaskQueue] = None
        self.result: Optional[ScheduleResult] = None
        self.metrics: Optional[ScheduleMetrics] = None
        self.collector: Optional[MetricsCollector] = None
        self.replay_makespan: Optional[int] = None
        self.violations = []

    def load(self):
        """Load all input files."""
        self.task_graph = load_task_graph(self.task_graph_path)
        print(f"Loaded {len(self.task_graph)} tasks and {len(self.task_graph.edges)} dependencies from {self.task_graph_path}")

        self.topology = load_topology(self.topology_path)
        print(f"Loaded {len(self.topology)} compute nodes and {len(self.topology.links)} links from {self.topology_path}")

    def validate(self) -> ValidationStatus:
        self.status = validate(self.task_graph, self.topology)
        if self.status is not ValidationStatus.OK:
            if self.status is ValidationStatus.CYCLIC_TASK_GRAPH:
                print(self.task_graph.find_cycles().describe())
            raise ValidationError(self.status)
        return self.status

    def build_queue(self) -> TaskQueue:
        self.queue = self.task_graph.generate_queue(self.config.queue_policy)
        print(self.queue.report())
        return self.queue

    def run(self) -> ScheduleResult:
        """Schedule the task graph.

        Returns:
            The schedule result
        """
        engine = AssignmentEngine(
            self.topology,
            placement=self.config.placement,
            link_count=self.config.link_count,
            duplex=self.config.duplex,
            horizon=self.config.horizon,
            rng=random.Random(self.config.seed),
        )

        print("\nScheduling...")
        self.result = engine.schedule(self.task_graph, self.queue)
        self.metrics = evaluate(self.task_graph, self.topology, self.result)
        print(f"Scheduling complete. Total schedule time: {self.metrics.total_time}")
        return self.result

    def replay(self) -> int:
        """Replay the schedule and collect per task metrics."""
        self.collector = MetricsCollector()
        runner = replay(self.task_graph, self.result, self.collector)
        self.replay_makespan = runner.makespan
        self.violations = runner.violations()
        return self.replay_makespan

    def print_summary(self):
        """Print run summary to console."""
        if self.collector and self.result and self.metrics:
            self.collector.print_summary(self.result, self.metrics, self.replay_makespan)

    def export_results(self, output_dir: str):
        """Export results to JSON and CSV files.

        Args:
            output_dir: Output directory path
        """
        if not self.collector:
            print("No metrics to export")
            return

        summary = self.collector.get_summary(self.result, self.metrics, self.replay_makespan)
        summary["input_files"] = {
            "task_graph": self.task_graph_path,
            "topology": self.topology_path,
        }

        json_path = f"{output_dir}/schedule_results.json"
        self.collector.export_json(json_path, summary, self.result)
        print(f"Exported JSON results to {json_path}")

        csv_path = f"{output_dir}/task_metrics.csv"
        self.collector.export_csv(csv_path)
        print(f"Exported CSV metrics to {csv_path}")

    def run_full(self, output_dir: Optional[str] = None) -> ScheduleResult:
        """Run the full pipeline.

        Args:
            output_dir: Optional output directory for results

        Returns:
            The schedule result
        """
        self.load()
        self.validate()
        self.build_queue()
        self.run()
        self.replay()
        self.print_summary()

        if output_dir:
            self.export_results(output_dir)

        return self.result
