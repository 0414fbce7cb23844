"""tactsched: assignment of task graphs onto compute node topologies."""

__version__ = "0.1.0"
