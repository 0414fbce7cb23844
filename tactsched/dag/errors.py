"""Exceptions raised by the scheduling core."""


class SchedulingError(ValueError):
    """Base class for scheduling failures."""


class TaskGraphError(SchedulingError):
    """Invalid task graph edit or lookup."""


class CyclicGraphError(TaskGraphError):
    """Analysis that requires an acyclic task graph met a cycle."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__(f"Task graph contains a cycle: {' -> '.join(str(t) for t in self.cycle)}")


class TopologyError(SchedulingError):
    """Invalid topology edit, unknown node or missing path."""


class CapacityError(SchedulingError):
    """A booking would end past the configured ledger horizon."""

    def __init__(self, end: int, horizon: int):
        self.end = end
        self.horizon = horizon
        super().__init__(f"Booking ending at tact {end} exceeds the ledger horizon of {horizon} tacts")


class ValidationError(SchedulingError):
    """Scheduling was requested for inputs that failed validation."""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Cannot schedule: {status.describe()} (status {int(status)})")
