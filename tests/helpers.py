from collections import defaultdict

from tactsched.dag import TaskGraph, Topology


def make_topology(node_count, links):
    topology = Topology()
    for node_id in range(node_count):
        topology.add_node(node_id)
    for source, target in links:
        topology.add_link(source, target)
    return topology


def make_graph(costs, edges):
    graph = TaskGraph()
    for task_id, cost in costs.items():
        graph.add_task(cost, task_id=task_id)
    for source, target, weight in edges:
        graph.add_dependency(source, target, weight)
    return graph


def _assert_disjoint(intervals, label):
    intervals = sorted(i for i in intervals if i[1] > i[0])
    for (s1, e1), (s2, e2) in zip(intervals, intervals[1:]):
        assert e1 <= s2, f"{label}: [{s1}, {e1}) overlaps [{s2}, {e2})"


def assert_valid_schedule(graph, topology, result):
    """Check the schedule invariants every run must satisfy."""
    assert set(result.tasks) == set(graph.tasks)

    for task in graph:
        entry = result.tasks[task.task_id]
        assert task.assigned
        assert entry.start >= 0
        assert entry.end - entry.start == task.cost
        assert (task.start_time, task.end_time, task.node_id) == (entry.start, entry.end, entry.node_id)

    for node in topology:
        starts = [entry.start for entry in node.scheduled]
        assert starts == sorted(starts)
        _assert_disjoint([(e.start, e.end) for e in node.scheduled], f"node {node.node_id}")

    for (source, target), edge in graph.edges.items():
        src = result.tasks[source]
        dst = result.tasks[target]
        hops = result.transmissions_for(source, target)
        if src.node_id == dst.node_id:
            assert hops == []
            assert dst.start >= src.end
            continue
        assert hops, f"no transmission for {source} -> {target}"
        assert hops[0].source_node == src.node_id
        assert hops[-1].target_node == dst.node_id
        assert hops[0].start >= src.end
        for hop, following in zip(hops, hops[1:]):
            assert hop.target_node == following.source_node
            assert following.start >= hop.end
        for hop in hops:
            assert hop.duration == edge.weight
            assert topology.graph.has_edge(hop.source_node, hop.target_node)
        assert hops[-1].end <= dst.start

    bookings = defaultdict(list)
    for t in result.transmissions:
        bookings[(t.source_node, t.source_link, "out")].append((t.start, t.end))
        bookings[(t.target_node, t.target_link, "in")].append((t.start, t.end))
    if result.duplex:
        for key, intervals in bookings.items():
            _assert_disjoint(intervals, f"link {key}")
    else:
        merged = defaultdict(list)
        for (node_id, link, _), intervals in bookings.items():
            merged[(node_id, link)].extend(intervals)
        for key, intervals in merged.items():
            _assert_disjoint(intervals, f"link {key}")
