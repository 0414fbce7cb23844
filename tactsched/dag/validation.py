"""Precondition checks run before scheduling."""

from enum import IntEnum

from .taskgraph import TaskGraph
from .topology import Topology


class ValidationStatus(IntEnum):
    OK = 0
    EMPTY_TOPOLOGY = 1
    DISCONNECTED_TOPOLOGY = 2
    EMPTY_TASK_GRAPH = 3
    CYCLIC_TASK_GRAPH = 4

    def describe(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ValidationStatus.OK: "ok",
    ValidationStatus.EMPTY_TOPOLOGY: "the topology has no compute nodes",
    ValidationStatus.DISCONNECTED_TOPOLOGY: "the topology is not connected",
    ValidationStatus.EMPTY_TASK_GRAPH: "the task graph has no tasks",
    ValidationStatus.CYCLIC_TASK_GRAPH: "the task graph has cycles",
}


def check_topology(topology: Topology) -> ValidationStatus:
    if topology.is_empty():
        return ValidationStatus.EMPTY_TOPOLOGY
    if not topology.is_connected():
        return ValidationStatus.DISCONNECTED_TOPOLOGY
    return ValidationStatus.OK


def validate(task_graph: TaskGraph, topology: Topology) -> ValidationStatus:
    """Check the task graph first, then the topology.

    Returns:
        The first failing status, or ``ValidationStatus.OK``
    """
    if task_graph.is_empty():
        return ValidationStatus.EMPTY_TASK_GRAPH
    if task_graph.has_cycles():
        return ValidationStatus.CYCLIC_TASK_GRAPH
    return check_topology(topology)
