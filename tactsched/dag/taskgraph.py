"""Task graph (DAG) with cycle detection, critical paths and queue policies."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import CyclicGraphError, TaskGraphError
from .models import DependencyEdge, IdAllocator, Task

logger = logging.getLogger(__name__)

_IN_PROGRESS = 1
_DONE = 2


class Direction(Enum):
    """Which adjacency a traversal follows."""

    SUCCESSORS = "successors"
    PREDECESSORS = "predecessors"


class QueuePolicy(Enum):
    """Orderings used to decide task assignment precedence."""

    CRITICAL_PATH = "critical-path"
    OUT_DEGREE = "out-degree"
    REVERSE_CRITICAL_PATH = "reverse-critical-path"

    @property
    def code(self) -> int:
        return _QUEUE_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> "QueuePolicy":
        for policy, value in _QUEUE_CODES.items():
            if value == code:
                return policy
        raise ValueError(f"Unknown queue type code: {code}")


_QUEUE_CODES = {
    QueuePolicy.CRITICAL_PATH: 1,
    QueuePolicy.OUT_DEGREE: 12,
    QueuePolicy.REVERSE_CRITICAL_PATH: 16,
}


@dataclass
class CycleReport:
    """Outcome of cycle detection."""

    cycles: List[List[int]] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    def describe(self) -> str:
        lines = []
        for number, cycle in enumerate(self.cycles, start=1):
            lines.append(f"Cycle #{number}: " + " ".join(str(task_id) for task_id in cycle))
        return "\n".join(lines)


@dataclass
class TaskQueue:
    """A full permutation of the tasks of a graph plus the values it was sorted by."""

    policy: QueuePolicy
    task_ids: List[int]
    values: Dict[int, Tuple]
    cp_time: int = 0
    cp_task_count: int = 0

    def __iter__(self) -> Iterator[int]:
        return iter(self.task_ids)

    def __len__(self) -> int:
        return len(self.task_ids)

    def report(self) -> str:
        separator = "-" * 32
        lines = [f"Queue (type = {self.policy.code})", separator]

        if self.policy is QueuePolicy.CRITICAL_PATH:
            lines.append(f"T = {self.cp_time}")
            lines.append(f"N = {self.cp_task_count}")
            lines.append(separator)
            for task_id in self.task_ids:
                cp_time, cp_count, _ = self.values[task_id]
                lines.append(f"T{task_id} = {cp_time}")
                lines.append(f"N{task_id} = {cp_count}")
                lines.append(separator)
            order = [f"G{t}({self.values[t][2]:.3f})" for t in self.task_ids]
        else:
            order = [f"G{t}({self.values[t][0]})" for t in self.task_ids]

        lines.append(" | ".join(order))
        return "\n".join(lines)


class TaskGraph:
    """Tasks addressed by id plus weighted precedence edges.

    Tasks keep the order they were added in; that order is the tie-break of
    every queue policy.
    """

    def __init__(self):
        self.tasks: Dict[int, Task] = {}
        self.edges: Dict[Tuple[int, int], DependencyEdge] = {}
        self.ids = IdAllocator()

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks.values())

    def __contains__(self, task_id: int) -> bool:
        return task_id in self.tasks

    def is_empty(self) -> bool:
        return not self.tasks

    # -- editing -----------------------------------------------------------

    def add_task(self, cost: int, task_id: Optional[int] = None) -> Task:
        if cost < 0:
            raise TaskGraphError(f"Task execution cost must be non-negative, got {cost}")
        if task_id is None:
            task_id = self.ids.allocate()
        elif task_id in self.tasks:
            raise TaskGraphError(f"Task {task_id} already exists")
        else:
            self.ids.reserve(task_id)
        task = Task(task_id=task_id, cost=cost)
        self.tasks[task_id] = task
        return task

    def remove_task(self, task_id: int):
        task = self.get_task(task_id)
        for successor in list(task.successors):
            self.remove_dependency(task_id, successor)
        for predecessor in list(task.predecessors):
            self.remove_dependency(predecessor, task_id)
        del self.tasks[task_id]
        self.ids.rebase(self.tasks)

    def add_dependency(self, source: int, target: int, weight: int) -> DependencyEdge:
        if source == target:
            raise TaskGraphError(f"Task {source} cannot depend on itself")
        if weight < 0:
            raise TaskGraphError(f"Communication weight must be non-negative, got {weight}")
        if (source, target) in self.edges:
            raise TaskGraphError(f"Dependency {source} -> {target} already exists")
        src = self.get_task(source)
        dst = self.get_task(target)
        edge = DependencyEdge(source=source, target=target, weight=weight)
        self.edges[(source, target)] = edge
        src.successors.append(target)
        dst.predecessors.append(source)
        return edge

    def remove_dependency(self, source: int, target: int):
        if (source, target) not in self.edges:
            raise TaskGraphError(f"No dependency {source} -> {target}")
        del self.edges[(source, target)]
        self.tasks[source].successors.remove(target)
        self.tasks[target].predecessors.remove(source)

    # -- lookups -----------------------------------------------------------

    def get_task(self, task_id: int) -> Task:
        try:
            return self.tasks[task_id]
        except KeyError:
            raise TaskGraphError(f"Unknown task: {task_id}") from None

    def get_edge(self, source: int, target: int) -> DependencyEdge:
        try:
            return self.edges[(source, target)]
        except KeyError:
            raise TaskGraphError(f"No dependency {source} -> {target}") from None

    def weight(self, source: int, target: int) -> int:
        return self.get_edge(source, target).weight

    def _adjacent(self, task_id: int, direction: Direction) -> List[int]:
        task = self.tasks[task_id]
        if direction is Direction.SUCCESSORS:
            return task.successors
        return task.predecessors

    def sequential_time(self) -> int:
        """Execution time of the whole graph on a single processor."""
        return sum(task.cost for task in self.tasks.values())

    # -- cycles ------------------------------------------------------------

    def find_cycles(self) -> CycleReport:
        """Detect cycles with depth first walks from the graph boundaries.

        Sinks are walked over predecessors and sources over successors; any
        task neither walk reached (a graph without boundaries, or a cycle
        detached from them) is then walked over predecessors.
        """
        report = CycleReport()
        seen = set()
        state = {Direction.SUCCESSORS: {}, Direction.PREDECESSORS: {}}

        for task in self.tasks.values():
            if task.is_sink:
                self._walk_cycles(task.task_id, Direction.PREDECESSORS, state, report, seen)
            elif task.is_source:
                self._walk_cycles(task.task_id, Direction.SUCCESSORS, state, report, seen)

        for task_id in self.tasks:
            if not any(task_id in visited for visited in state.values()):
                self._walk_cycles(task_id, Direction.PREDECESSORS, state, report, seen)

        if report.has_cycles:
            logger.debug("Found %d cycle(s) in task graph", len(report.cycles))
        return report

    def has_cycles(self) -> bool:
        return self.find_cycles().has_cycles

    def _walk_cycles(self, root: int, direction: Direction, state: Dict, report: CycleReport, seen: set):
        color = state[direction]
        if root in color:
            return
        color[root] = _IN_PROGRESS
        path = [root]
        stack = [iter(self._adjacent(root, direction))]

        while stack:
            for neighbor in stack[-1]:
                mark = color.get(neighbor)
                if mark == _IN_PROGRESS:
                    self._record_cycle(path[path.index(neighbor):], direction, report, seen)
                elif mark is None:
                    color[neighbor] = _IN_PROGRESS
                    path.append(neighbor)
                    stack.append(iter(self._adjacent(neighbor, direction)))
                    break
            else:
                color[path.pop()] = _DONE
                stack.pop()

    @staticmethod
    def _record_cycle(cycle: List[int], direction: Direction, report: CycleReport, seen: set):
        if direction is Direction.PREDECESSORS:
            cycle = cycle[::-1]
        pivot = cycle.index(min(cycle))
        cycle = cycle[pivot:] + cycle[:pivot]
        key = tuple(cycle)
        if key not in seen:
            seen.add(key)
            report.cycles.append(cycle)

    # -- critical paths ----------------------------------------------------

    def _longest_routes(self, direction: Direction) -> Tuple[Dict[int, int], Dict[int, int]]:
        """Longest route time and task count from every task to the boundary.

        Both values include the task itself. Maxima are taken independently,
        as the longest route by time need not be the longest by task count.
        """
        times: Dict[int, int] = {}
        counts: Dict[int, int] = {}
        in_progress = set()

        for root in self.tasks:
            if root in times:
                continue
            stack = [(root, False)]
            while stack:
                task_id, expanded = stack.pop()
                if task_id in times:
                    continue
                neighbors = self._adjacent(task_id, direction)
                if expanded:
                    in_progress.discard(task_id)
                    times[task_id] = self.tasks[task_id].cost + max((times[n] for n in neighbors), default=0)
                    counts[task_id] = 1 + max((counts[n] for n in neighbors), default=0)
                    continue
                if task_id in in_progress:
                    raise self._cycle_error(task_id)
                in_progress.add(task_id)
                stack.append((task_id, True))
                for neighbor in neighbors:
                    if neighbor in in_progress:
                        raise self._cycle_error(neighbor)
                    if neighbor not in times:
                        stack.append((neighbor, False))
        return times, counts

    def _cycle_error(self, task_id: int) -> CyclicGraphError:
        cycles = self.find_cycles().cycles
        return CyclicGraphError(cycles[0] if cycles else [task_id])

    def calculate_critical_paths(self, direction: Direction = Direction.SUCCESSORS, exclude_self: bool = False) -> Tuple[int, int]:
        """Store every task's critical path time and task count.

        With ``exclude_self`` the task's own cost and count are left out, so a
        task without neighbours in ``direction`` scores zero. Returns the
        graph wide maxima of time and count.
        """
        times, counts = self._longest_routes(direction)
        for task in self.tasks.values():
            if exclude_self:
                neighbors = self._adjacent(task.task_id, direction)
                task.cp_time = max((times[n] for n in neighbors), default=0)
                task.cp_task_count = max((counts[n] for n in neighbors), default=0)
            else:
                task.cp_time = times[task.task_id]
                task.cp_task_count = counts[task.task_id]
        cp_time = max((task.cp_time for task in self.tasks.values()), default=0)
        cp_count = max((task.cp_task_count for task in self.tasks.values()), default=0)
        return cp_time, cp_count

    def critical_time(self) -> int:
        """Longest execution cost route through the graph."""
        times, _ = self._longest_routes(Direction.SUCCESSORS)
        return max(times.values(), default=0)

    # -- queues ------------------------------------------------------------

    def generate_queue(self, policy: QueuePolicy = QueuePolicy.CRITICAL_PATH) -> TaskQueue:
        """Order every task of the graph according to ``policy``.

        Sorting is stable, so ties keep the order tasks were added in.
        """
        if policy is QueuePolicy.CRITICAL_PATH:
            queue = self._critical_path_queue()
        elif policy is QueuePolicy.OUT_DEGREE:
            queue = self._out_degree_queue()
        elif policy is QueuePolicy.REVERSE_CRITICAL_PATH:
            queue = self._reverse_critical_path_queue()
        else:
            raise ValueError(f"Unsupported queue policy: {policy}")
        logger.debug("Generated %s queue: %s", policy.value, queue.task_ids)
        return queue

    def _critical_path_queue(self) -> TaskQueue:
        cp_time, cp_count = self.calculate_critical_paths(Direction.SUCCESSORS)
        for task in self.tasks.values():
            time_share = task.cp_time / cp_time if cp_time else 0.0
            count_share = task.cp_task_count / cp_count if cp_count else 0.0
            task.priority = time_share + count_share
        ordered = sorted(self.tasks.values(), key=lambda t: t.priority, reverse=True)
        return TaskQueue(
            policy=QueuePolicy.CRITICAL_PATH,
            task_ids=[t.task_id for t in ordered],
            values={t.task_id: (t.cp_time, t.cp_task_count, t.priority) for t in ordered},
            cp_time=cp_time,
            cp_task_count=cp_count,
        )

    def _out_degree_queue(self) -> TaskQueue:
        ordered = sorted(self.tasks.values(), key=lambda t: len(t.successors), reverse=True)
        return TaskQueue(
            policy=QueuePolicy.OUT_DEGREE,
            task_ids=[t.task_id for t in ordered],
            values={t.task_id: (len(t.successors),) for t in ordered},
        )

    def _reverse_critical_path_queue(self) -> TaskQueue:
        cp_time, cp_count = self.calculate_critical_paths(Direction.PREDECESSORS, exclude_self=True)
        ordered = sorted(self.tasks.values(), key=lambda t: t.cp_time)
        return TaskQueue(
            policy=QueuePolicy.REVERSE_CRITICAL_PATH,
            task_ids=[t.task_id for t in ordered],
            values={t.task_id: (t.cp_time, t.cp_task_count) for t in ordered},
            cp_time=cp_time,
            cp_task_count=cp_count,
        )
