"""SimPy-based replay of a finished schedule."""

from typing import Dict, List, Optional

import simpy

from .metrics import MetricsCollector
from .models import DataTransmission, ScheduledTask
from .scheduler import ScheduleResult
from .taskgraph import TaskGraph


class ScheduleReplay:
    """Replays a schedule, executing tasks and hop chains as SimPy processes.

    A task waits for its local predecessors and for the last hop of every
    incoming transfer, then for its scheduled start, then holds its node's
    processor for its execution cost. A feasible schedule replays with no
    deviation from the scheduled times.
    """

    def __init__(
        self,
        env: simpy.Environment,
        task_graph: TaskGraph,
        result: ScheduleResult,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize the replay.

        Args:
            env: SimPy environment
            task_graph: Task definitions
            result: The schedule to replay
            metrics: Optional metrics collector
        """
        self.env = env
        self.task_graph = task_graph
        self.result = result
        self.metrics = metrics

        # Completion events for each task
        self.completion_events: Dict[int, simpy.Event] = {}
        self.processors: Dict[int, simpy.Resource] = {}
        self.makespan: Optional[int] = None

    def _transfer(self, source_task: int, hops: List[DataTransmission]):
        """Carry one dependency's data along its hops after the source finishes."""
        yield self.completion_events[source_task]
        for hop in hops:
            if hop.start > self.env.now:
                yield self.env.timeout(hop.start - self.env.now)
            yield self.env.timeout(hop.duration)

    def _execute_task(self, entry: ScheduledTask):
        task = self.task_graph.get_task(entry.task_id)

        # 1. Wait for inputs
        inputs = []
        for predecessor_id in task.predecessors:
            hops = self.result.transmissions_for(predecessor_id, task.task_id)
            inputs.append(self.env.process(self._transfer(predecessor_id, hops)))
        if inputs:
            yield simpy.AllOf(self.env, inputs)
        ready = self.env.now

        # 2. Wait for the scheduled slot and the processor
        if entry.start > self.env.now:
            yield self.env.timeout(entry.start - self.env.now)
        if task.cost == 0:
            # Zero cost tasks never hold the processor
            entry.actual_start = entry.actual_end = self.env.now
            entry.wait_time = entry.actual_start - ready
        else:
            with self.processors[entry.node_id].request() as request:
                yield request
                entry.actual_start = self.env.now
                entry.wait_time = entry.actual_start - ready

                # 3. Execute
                yield self.env.timeout(task.cost)
                entry.actual_end = self.env.now

        self.completion_events[task.task_id].succeed()

        if self.metrics is not None:
            self.metrics.record_task_completion(entry)

    def run(self) -> int:
        """Run the replay.

        Returns:
            The replayed makespan
        """
        for entry in self.result.tasks.values():
            self.completion_events[entry.task_id] = self.env.event()
            if entry.node_id not in self.processors:
                self.processors[entry.node_id] = simpy.Resource(self.env, capacity=1)

        for entry in self.result.tasks.values():
            self.env.process(self._execute_task(entry))

        self.env.run()

        self.makespan = max(
            (entry.actual_end for entry in self.result.tasks.values() if entry.actual_end is not None),
            default=0,
        )
        return self.makespan

    def violations(self) -> List[str]:
        """Tasks whose replayed times differ from the schedule."""
        found = []
        for entry in self.result.tasks.values():
            if entry.actual_start is None:
                found.append(f"Task {entry.task_id} never ran")
            elif entry.actual_start != entry.start or entry.actual_end != entry.end:
                found.append(
                    f"Task {entry.task_id} replayed at [{entry.actual_start}, {entry.actual_end}) "
                    f"but was scheduled at [{entry.start}, {entry.end})"
                )
        return found


def replay(task_graph: TaskGraph, result: ScheduleResult, metrics: Optional[MetricsCollector] = None) -> ScheduleReplay:
    """Replay ``result`` in a fresh environment and return the finished replay."""
    runner = ScheduleReplay(simpy.Environment(), task_graph, result, metrics)
    runner.run()
    return runner
