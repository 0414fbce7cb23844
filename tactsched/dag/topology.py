"""Compute node topology with breadth-first path finding."""

from typing import Dict, Iterable, List, Optional

import networkx as nx

from .errors import TopologyError
from .models import ComputeNode, IdAllocator, NetworkLink


class Topology:
    """Compute nodes connected by undirected links.

    Edge cost is uniform: shortest paths minimise hop count. Neighbours are
    visited in the order their links were added, which makes the chosen
    path deterministic among paths of equal length.
    """

    def __init__(
        self,
        nodes: Optional[Iterable[ComputeNode]] = None,
        links: Optional[Iterable[NetworkLink]] = None,
    ):
        """Initialize the topology.

        Args:
            nodes: Compute nodes, in the order they should be considered
            links: Undirected links between node ids
        """
        self.nodes: Dict[int, ComputeNode] = {}
        self.links: List[NetworkLink] = []
        self.graph = nx.Graph()
        self.ids = IdAllocator()

        for node in nodes or []:
            self._insert_node(node)
        for link in links or []:
            self.add_link(link.source, link.target)

    def _insert_node(self, node: ComputeNode):
        if node.node_id in self.nodes:
            raise TopologyError(f"Compute node {node.node_id} already exists")
        self.ids.reserve(node.node_id)
        self.nodes[node.node_id] = node
        self.graph.add_node(node.node_id, compute_node=node)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self):
        return iter(self.nodes.values())

    def is_empty(self) -> bool:
        return not self.nodes

    def add_node(self, node_id: Optional[int] = None) -> ComputeNode:
        if node_id is None:
            node_id = self.ids.allocate()
        node = ComputeNode(node_id=node_id)
        self._insert_node(node)
        return node

    def remove_node(self, node_id: int):
        self.get_node(node_id)
        self.graph.remove_node(node_id)
        self.links = [link for link in self.links if node_id not in link.endpoints()]
        del self.nodes[node_id]
        self.ids.rebase(self.nodes)

    def add_link(self, source: int, target: int) -> NetworkLink:
        if source == target:
            raise TopologyError(f"Cannot link compute node {source} to itself")
        self.get_node(source)
        self.get_node(target)
        if self.graph.has_edge(source, target):
            raise TopologyError(f"Compute nodes {source} and {target} are already linked")
        link = NetworkLink(source=source, target=target)
        self.graph.add_edge(source, target, link=link)
        self.links.append(link)
        return link

    def remove_link(self, source: int, target: int):
        if not self.graph.has_edge(source, target):
            raise TopologyError(f"No link between compute nodes {source} and {target}")
        self.graph.remove_edge(source, target)
        self.links = [link for link in self.links if set(link.endpoints()) != {source, target}]

    def get_node(self, node_id: int) -> ComputeNode:
        """Get a compute node by ID."""
        node = self.nodes.get(node_id)
        if node is None:
            raise TopologyError(f"Unknown compute node: {node_id}")
        return node

    def neighbors(self, node_id: int) -> List[int]:
        self.get_node(node_id)
        return list(self.graph.neighbors(node_id))

    def degree(self, node_id: int) -> int:
        return self.graph.degree(node_id)

    def is_connected(self) -> bool:
        """Breadth-first reachability from the first node covers every node."""
        if not self.nodes:
            return False
        first = next(iter(self.nodes))
        reached = {first}
        reached.update(child for _, child in nx.bfs_edges(self.graph, first))
        return len(reached) == len(self.nodes)

    def get_path(self, source: int, target: int) -> List[int]:
        """Find the shortest path between two nodes using breadth-first search.

        Args:
            source: Source node ID
            target: Target node ID

        Returns:
            List of node IDs forming the path (including source and target)
        """
        self.get_node(source)
        self.get_node(target)
        if source == target:
            return [source]

        parents: Dict[int, int] = {}
        for child, parent in nx.bfs_predecessors(self.graph, source):
            parents[child] = parent
            if child == target:
                break
        if target not in parents:
            raise TopologyError(f"No path exists between {source} and {target}")

        path = [target]
        while path[-1] != source:
            path.append(parents[path[-1]])
        path.reverse()
        return path

    def hop_count(self, source: int, target: int) -> int:
        return len(self.get_path(source, target)) - 1

    def get_transfer_time(self, source: int, target: int, weight: int) -> int:
        """Estimated transfer time: one ``weight`` per hop along the path."""
        return weight * self.hop_count(source, target)

    def reset_resources(self, link_count: int = 1, horizon: Optional[int] = None):
        """Give every node fresh links, ledger and task list, and refresh priorities."""
        for node in self.nodes.values():
            node.reset(link_count=link_count, horizon=horizon)
            node.priority = self.degree(node.node_id)

    def nodes_by_priority(self) -> List[ComputeNode]:
        """Nodes in ascending neighbour count, ties in insertion order."""
        return sorted(self.nodes.values(), key=lambda node: node.priority)
