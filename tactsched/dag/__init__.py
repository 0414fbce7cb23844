"""Task graph assignment onto a topology of compute nodes and physical links.

Tasks are bound to compute nodes and their data transfers to physical links
in discrete time units (tacts), without processor or link collisions.
"""

from .config import ScheduleConfig
from .errors import (
    CapacityError,
    CyclicGraphError,
    SchedulingError,
    TaskGraphError,
    TopologyError,
    ValidationError,
)
from .ledger import LinkDirection, LinkState, Tact, TactTrack, Timeline
from .loaders import load_task_graph, load_topology, parse_task_graph, parse_topology
from .metrics import (
    AlgorithmComparison,
    MetricsCollector,
    ScheduleMetrics,
    compare_algorithms,
    evaluate,
    total_schedule_time,
)
from .models import (
    ComputeNode,
    DataTransmission,
    DependencyEdge,
    NetworkLink,
    PhysicalLink,
    ScheduledTask,
    Task,
)
from .pipeline import SchedulingPipeline
from .replay import ScheduleReplay, replay
from .routing import LinkContentionResolver, LinkSlot
from .scheduler import AssignmentEngine, Placement, ScheduleResult, schedule
from .taskgraph import CycleReport, Direction, QueuePolicy, TaskGraph, TaskQueue
from .topology import Topology
from .validation import ValidationStatus, validate

__all__ = [
    "AlgorithmComparison",
    "AssignmentEngine",
    "CapacityError",
    "ComputeNode",
    "CycleReport",
    "CyclicGraphError",
    "DataTransmission",
    "DependencyEdge",
    "Direction",
    "LinkContentionResolver",
    "LinkDirection",
    "LinkSlot",
    "LinkState",
    "MetricsCollector",
    "NetworkLink",
    "PhysicalLink",
    "Placement",
    "QueuePolicy",
    "ScheduleConfig",
    "ScheduleMetrics",
    "ScheduleReplay",
    "ScheduleResult",
    "ScheduledTask",
    "SchedulingError",
    "SchedulingPipeline",
    "Tact",
    "TactTrack",
    "Task",
    "TaskGraph",
    "TaskGraphError",
    "TaskQueue",
    "Timeline",
    "Topology",
    "TopologyError",
    "ValidationError",
    "ValidationStatus",
    "compare_algorithms",
    "evaluate",
    "load_task_graph",
    "load_topology",
    "parse_task_graph",
    "parse_topology",
    "replay",
    "schedule",
    "total_schedule_time",
    "validate",
]
