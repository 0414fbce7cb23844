"""Data models for task graph assignment onto a compute topology."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .ledger import TactTrack


class IdAllocator:
    """Hands out integer ids for one graph.

    The next id is always one past the highest id seen, so removing items
    never causes an id to be reused while higher ids are still alive.
    """

    def __init__(self, start: int = 0):
        self._next = start

    def allocate(self) -> int:
        value = self._next
        self._next += 1
        return value

    def reserve(self, value: int):
        """Mark an explicitly chosen id as used."""
        if value >= self._next:
            self._next = value + 1

    def rebase(self, used: Iterable[int], start: int = 0):
        """Recompute the next id from the ids still in use."""
        self._next = max(used, default=start - 1) + 1

    @property
    def next_id(self) -> int:
        return self._next


@dataclass
class Task:
    """A task of the DAG with its analysis and assignment state."""

    task_id: int
    cost: int  # Execution cost in tacts
    successors: List[int] = field(default_factory=list)
    predecessors: List[int] = field(default_factory=list)

    # Queue analysis (recomputed by every queue generation)
    cp_time: int = 0
    cp_task_count: int = 0
    priority: float = 0.0

    # Assignment (reset by every scheduling run)
    assigned: bool = False
    node_id: Optional[int] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None

    @property
    def is_source(self) -> bool:
        return not self.predecessors

    @property
    def is_sink(self) -> bool:
        return not self.successors

    def reset_assignment(self):
        self.assigned = False
        self.node_id = None
        self.start_time = None
        self.end_time = None


@dataclass
class DependencyEdge:
    """A precedence edge of the DAG."""

    source: int
    target: int
    weight: int  # Communication cost in tacts per hop


@dataclass
class ScheduledTask:
    """A task with its schedule assignment."""

    task_id: int
    node_id: int
    start: int
    end: int

    # Replay times (filled by ScheduleReplay)
    actual_start: Optional[int] = None
    actual_end: Optional[int] = None
    wait_time: int = 0

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def actual_duration(self) -> Optional[int]:
        """Calculate actual duration from replayed start and end times."""
        if self.actual_start is not None and self.actual_end is not None:
            return self.actual_end - self.actual_start
        return None


@dataclass
class DataTransmission:
    """One hop of a data transfer between two adjacent compute nodes."""

    source_task: int
    target_task: int
    source_node: int
    target_node: int
    start: int
    end: int
    source_link: int
    target_link: int

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass
class PhysicalLink:
    """A bandwidth limited channel of a compute node."""

    link_number: int
    transmissions: List[DataTransmission] = field(default_factory=list)


@dataclass
class NetworkLink:
    """An undirected connection between two compute nodes."""

    source: int
    target: int

    def endpoints(self) -> Tuple[int, int]:
        return self.source, self.target


@dataclass
class ComputeNode:
    """A compute node in the network topology.

    Links, ledger and scheduled tasks are resource state: they are rebuilt
    by ``reset`` at the start of every scheduling run.
    """

    node_id: int
    priority: int = 0  # Neighbour count, refreshed before scheduling
    links: List[PhysicalLink] = field(default_factory=lambda: [PhysicalLink(0)])
    ledger: TactTrack = field(default_factory=TactTrack)
    scheduled: List[ScheduledTask] = field(default_factory=list)

    def reset(self, link_count: int = 1, horizon: Optional[int] = None):
        if link_count < 1:
            raise ValueError(f"Node {self.node_id} needs at least one physical link, got {link_count}")
        self.links = [PhysicalLink(i) for i in range(link_count)]
        self.ledger = TactTrack(link_count=link_count, horizon=horizon)
        self.scheduled = []

    @property
    def link_count(self) -> int:
        return len(self.links)

    @property
    def last_task_end_time(self) -> int:
        """End time of the latest task on this node, 0 when idle."""
        return max((entry.end for entry in self.scheduled), default=0)

    @property
    def is_empty(self) -> bool:
        return not self.scheduled

    def add_scheduled(self, entry: ScheduledTask):
        """Insert a scheduled task keeping the list ordered by start time."""
        position = len(self.scheduled)
        while position > 0 and self.scheduled[position - 1].start > entry.start:
            position -= 1
        self.scheduled.insert(position, entry)

