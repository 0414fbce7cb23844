#!/usr/bin/env python3
"""CLI entry point for scheduling a task graph onto a compute topology."""

import argparse
import logging
import sys
from pathlib import Path

from tactsched.dag import (
    Placement,
    QueuePolicy,
    ScheduleConfig,
    SchedulingError,
    SchedulingPipeline,
    compare_algorithms,
)
from tactsched.dag.metrics import print_comparison


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Assign a task graph to a topology of compute nodes and physical links",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--task-graph",
        type=str,
        default="task_graph.json",
        help="Path to task graph definition file",
    )

    parser.add_argument(
        "--topology",
        type=str,
        default="topology.json",
        help="Path to compute topology file",
    )

    parser.add_argument(
        "--placement",
        choices=[p.value for p in Placement],
        default=Placement.GREEDY.value,
        help="Task placement algorithm",
    )

    parser.add_argument(
        "--queue",
        choices=[q.value for q in QueuePolicy],
        default=QueuePolicy.CRITICAL_PATH.value,
        help="Task queue policy",
    )

    parser.add_argument(
        "--links",
        type=int,
        default=1,
        help="Physical links per compute node",
    )

    parser.add_argument(
        "--duplex",
        action="store_true",
        help="Allow simultaneous inbound and outbound transfers on a link",
    )

    parser.add_argument(
        "--horizon",
        type=int,
        default=None,
        help="Ledger capacity in tacts. Unbounded if not specified.",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for random placement",
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for results (JSON and CSV). If not specified, no files are written.",
    )

    parser.add_argument(
        "--compare",
        action="store_true",
        help="Also run every placement and queue combination and print their quality ratios",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log assignment decisions",
    )

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    # Validate input files exist
    for path_arg, name in [
        (args.task_graph, "task graph"),
        (args.topology, "topology"),
    ]:
        if not Path(path_arg).exists():
            print(f"Error: {name} file not found: {path_arg}", file=sys.stderr)
            sys.exit(1)

    config = ScheduleConfig(
        placement=Placement(args.placement),
        queue_policy=QueuePolicy(args.queue),
        link_count=args.links,
        duplex=args.duplex,
        horizon=args.horizon,
        seed=args.seed,
    )

    try:
        pipeline = SchedulingPipeline(args.task_graph, args.topology, config)
        pipeline.run_full(output_dir=args.output)

        print("\nVERIFICATION:")
        if pipeline.violations:
            print(f"  WARNING: {len(pipeline.violations)} replay deviations found!")
            for v in pipeline.violations[:5]:
                print(f"    - {v}")
            if len(pipeline.violations) > 5:
                print(f"    ... and {len(pipeline.violations) - 5} more")
        else:
            print("  Replay matches the schedule.")

        if args.compare:
            rows = compare_algorithms(
                pipeline.task_graph,
                pipeline.topology,
                link_count=config.link_count,
                duplex=config.duplex,
                seed=config.seed,
            )
            print_comparison(rows)

    except (SchedulingError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
