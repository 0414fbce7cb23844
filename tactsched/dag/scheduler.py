"""Assignment of task graphs onto compute nodes and physical links."""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import ValidationError
from .models import ComputeNode, DataTransmission, ScheduledTask, Task
from .routing import LinkContentionResolver
from .taskgraph import QueuePolicy, TaskGraph, TaskQueue
from .topology import Topology
from .validation import ValidationStatus, validate

logger = logging.getLogger(__name__)


class RandomPlacement:
    """Places every task on a uniformly random compute node."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def place_source(self, engine: "AssignmentEngine", task: Task) -> Tuple[ComputeNode, int]:
        node = self.rng.choice(engine.nodes)
        return node, node.last_task_end_time

    def place_dependent(self, engine: "AssignmentEngine", task: Task) -> ComputeNode:
        return self.rng.choice(engine.nodes)


class GreedyPlacement:
    """Spreads source tasks over idle nodes and pulls dependents towards their inputs."""

    def place_source(self, engine: "AssignmentEngine", task: Task) -> Tuple[ComputeNode, int]:
        # The last empty node met scanning back to front is the front-most one
        chosen = None
        for node in reversed(engine.nodes):
            if node.is_empty:
                chosen = node
        if chosen is not None:
            return chosen, 0

        earliest = engine.nodes[0]
        for node in engine.nodes[1:]:
            if node.last_task_end_time < earliest.last_task_end_time:
                earliest = node
        return earliest, earliest.last_task_end_time

    def place_dependent(self, engine: "AssignmentEngine", task: Task) -> ComputeNode:
        return engine.select_best_node(task)


class Placement(Enum):
    """Task placement algorithms."""

    RANDOM = "random"
    GREEDY = "greedy"

    @property
    def code(self) -> int:
        return _PLACEMENT_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> "Placement":
        for placement, value in _PLACEMENT_CODES.items():
            if value == code:
                return placement
        raise ValueError(f"Unknown assignment algorithm code: {code}")

    def strategy(self, rng: Optional[random.Random] = None):
        if self is Placement.RANDOM:
            return RandomPlacement(rng)
        return GreedyPlacement()


_PLACEMENT_CODES = {
    Placement.RANDOM: 1,
    Placement.GREEDY: 5,
}


@dataclass
class ScheduleResult:
    """Outcome of one scheduling run."""

    placement: Placement
    policy: Optional[QueuePolicy]
    link_count: int
    duplex: bool
    tasks: Dict[int, ScheduledTask] = field(default_factory=dict)
    transmissions: List[DataTransmission] = field(default_factory=list)
    assignment_order: List[int] = field(default_factory=list)

    @property
    def makespan(self) -> int:
        return max((entry.end for entry in self.tasks.values()), default=0)

    def transmissions_for(self, source_task: int, target_task: int) -> List[DataTransmission]:
        """Hops carrying the data of one dependency, in route order."""
        hops = [t for t in self.transmissions if t.source_task == source_task and t.target_task == target_task]
        return sorted(hops, key=lambda t: t.start)


class AssignmentEngine:
    """Binds tasks to compute nodes and their data transfers to physical links.

    Every call to ``schedule`` starts from clean resource state: node links,
    ledgers and task lists are rebuilt, and task assignment fields cleared.
    """

    def __init__(
        self,
        topology: Topology,
        placement: Placement = Placement.GREEDY,
        link_count: int = 1,
        duplex: bool = False,
        horizon: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the engine.

        Args:
            topology: Compute nodes and their links
            placement: Placement algorithm
            link_count: Physical links per compute node
            duplex: Whether links carry both directions at once
            horizon: Optional ledger capacity in tacts
            rng: Random source for random placement
        """
        if link_count < 1:
            raise ValueError(f"link_count must be at least 1, got {link_count}")
        self.topology = topology
        self.placement = placement
        self.link_count = link_count
        self.duplex = duplex
        self.horizon = horizon
        self.strategy = placement.strategy(rng)
        self.resolver = LinkContentionResolver(duplex=duplex)

        self.task_graph: Optional[TaskGraph] = None
        self.nodes: List[ComputeNode] = []
        self.result: Optional[ScheduleResult] = None
        self._paths: Dict[Tuple[int, int], List[int]] = {}

    def reset(self, task_graph: TaskGraph, policy: Optional[QueuePolicy] = None):
        """Clear all resource and assignment state before a run."""
        self.task_graph = task_graph
        self.topology.reset_resources(link_count=self.link_count, horizon=self.horizon)
        self.nodes = self.topology.nodes_by_priority()
        self._paths = {}
        for task in task_graph:
            task.reset_assignment()
        self.result = ScheduleResult(
            placement=self.placement,
            policy=policy,
            link_count=self.link_count,
            duplex=self.duplex,
        )

    def schedule(self, task_graph: TaskGraph, queue: Iterable[int]) -> ScheduleResult:
        """Assign every task of ``queue`` in readiness order.

        Each pass takes the first task of the remaining queue whose
        predecessors are all assigned. The graph must be acyclic.
        """
        policy = queue.policy if isinstance(queue, TaskQueue) else None
        self.reset(task_graph, policy)
        pending = list(queue)

        while pending:
            task = self.select_next_task(pending)
            pending.remove(task.task_id)
            if task.is_source:
                self.assign_independent_task(task)
            else:
                self.assign_dependent_task(task)

        logger.debug(
            "Scheduled %d tasks with %d transmissions, makespan %d",
            len(self.result.tasks), len(self.result.transmissions), self.result.makespan,
        )
        return self.result

    def select_next_task(self, pending: List[int]) -> Task:
        for task_id in pending:
            task = self.task_graph.get_task(task_id)
            if all(self.task_graph.tasks[p].assigned for p in task.predecessors):
                return task
        raise ValueError(f"No task in {pending} has all predecessors assigned")

    def shortest_path(self, source: int, target: int) -> List[int]:
        key = (source, target)
        if key not in self._paths:
            self._paths[key] = self.topology.get_path(source, target)
        return self._paths[key]

    def assign_independent_task(self, task: Task) -> ScheduledTask:
        node, start = self.strategy.place_source(self, task)
        start = node.ledger.next_free_processor(start, task.cost)
        return self._assign(task, node, start)

    def assign_dependent_task(self, task: Task, target: Optional[ComputeNode] = None) -> ScheduledTask:
        """Place a task whose predecessors are all assigned.

        Args:
            task: Task to place
            target: Node to use instead of asking the placement algorithm
        """
        if target is None:
            target = self.strategy.place_dependent(self, task)
        arrival = self.route_data(task, target)
        start = target.ledger.next_free_processor(arrival, task.cost)
        return self._assign(task, target, start)

    def select_best_node(self, task: Task) -> ComputeNode:
        """Node with the smallest estimated arrival of all inputs of ``task``.

        One input costs its edge weight per hop. Several inputs add up on a
        single physical link, and overlap when there are more links, in
        which case the slowest input decides. Ties go to the first node.
        """
        best_node = None
        best_time = None
        for node in self.nodes:
            times = [
                self.topology.get_transfer_time(
                    self.task_graph.tasks[p].node_id, node.node_id, self.task_graph.weight(p, task.task_id)
                )
                for p in task.predecessors
            ]
            if len(times) > 1 and self.link_count == 1:
                estimate = sum(times)
            else:
                estimate = max(times)
            if best_time is None or estimate < best_time:
                best_node, best_time = node, estimate
        return best_node

    def route_data(self, task: Task, target: ComputeNode) -> int:
        """Schedule hop by hop transfers from every predecessor to ``target``.

        Returns:
            The time the last input arrives
        """
        arrivals = []
        for predecessor_id in task.predecessors:
            predecessor = self.task_graph.tasks[predecessor_id]
            weight = self.task_graph.weight(predecessor_id, task.task_id)
            path = self.shortest_path(predecessor.node_id, target.node_id)
            time = predecessor.end_time

            for current_id, next_id in zip(path, path[1:]):
                transmission = self.resolver.transmit(
                    self.topology.get_node(current_id),
                    self.topology.get_node(next_id),
                    time,
                    weight,
                    predecessor_id,
                    task.task_id,
                )
                self.result.transmissions.append(transmission)
                time = transmission.end
            arrivals.append(time)
        return max(arrivals)

    def _assign(self, task: Task, node: ComputeNode, start: int) -> ScheduledTask:
        end = start + task.cost
        node.ledger.book_task(start, end, task.task_id)
        entry = ScheduledTask(task_id=task.task_id, node_id=node.node_id, start=start, end=end)
        node.add_scheduled(entry)

        task.start_time = start
        task.end_time = end
        task.node_id = node.node_id
        task.assigned = True

        self.result.tasks[task.task_id] = entry
        self.result.assignment_order.append(task.task_id)
        logger.debug("Task %s assigned to node %s at [%s, %s)", task.task_id, node.node_id, start, end)
        return entry


def schedule(
    task_graph: TaskGraph,
    topology: Topology,
    placement: Placement = Placement.GREEDY,
    link_count: int = 1,
    duplex: bool = False,
    policy: QueuePolicy = QueuePolicy.CRITICAL_PATH,
    queue: Optional[TaskQueue] = None,
    horizon: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> ScheduleResult:
    """Validate the inputs, build a queue if none is given, and schedule.

    Raises:
        ValidationError: if ``validate`` reports anything but OK
    """
    status = validate(task_graph, topology)
    if status is not ValidationStatus.OK:
        raise ValidationError(status)
    if queue is None:
        queue = task_graph.generate_queue(policy)
    engine = AssignmentEngine(
        topology,
        placement=placement,
        link_count=link_count,
        duplex=duplex,
        horizon=horizon,
        rng=rng,
    )
    return engine.schedule(task_graph, queue)
