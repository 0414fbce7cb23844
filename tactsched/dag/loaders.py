"""JSON readers for task graph and topology files."""

import json

from .models import ComputeNode, NetworkLink
from .taskgraph import TaskGraph
from .topology import Topology


def parse_task_graph(data: dict) -> TaskGraph:
    """Build a task graph from ``{"tasks": [...], "edges": [...]}``.

    Tasks without an ``id`` get the next free one, in file order.
    """
    graph = TaskGraph()
    for task_data in data.get("tasks", []):
        task_id = task_data.get("id")
        graph.add_task(cost=int(task_data.get("cost", 0)), task_id=None if task_id is None else int(task_id))
    for edge_data in data.get("edges", []):
        graph.add_dependency(
            int(edge_data["source"]),
            int(edge_data["target"]),
            int(edge_data.get("weight", 0)),
        )
    return graph


def parse_topology(data: dict) -> Topology:
    """Build a topology from ``{"nodes": [...], "links": [...]}``."""
    nodes = [ComputeNode(node_id=int(node_data["id"])) for node_data in data.get("nodes", [])]
    links = [
        NetworkLink(source=int(link_data["source"]), target=int(link_data["target"]))
        for link_data in data.get("links", [])
    ]
    return Topology(nodes, links)


def load_task_graph(filepath: str) -> TaskGraph:
    """Load a task graph from a JSON file.

    Args:
        filepath: Path to the task graph file

    Returns:
        The task graph, not yet validated
    """
    with open(filepath, "r") as f:
        data = json.load(f)
    return parse_task_graph(data)


def load_topology(filepath: str) -> Topology:
    """Load a topology from a JSON file.

    Args:
        filepath: Path to the topology file

    Returns:
        The topology, not yet validated
    """
    with open(filepath, "r") as f:
        data = json.load(f)
    return parse_topology(data)
