#!/usr/bin/env python3
"""Visibility report for an inter-satellite link instance.

Loads (or generates) an instance, builds the visibility caches and prints
per-link first visibility and the scheduling lower bounds.
"""

import argparse
import logging
import math
import time
from pathlib import Path

from isl_oracle.network.instance import Instance
from isl_oracle.prediction.visibility_solver import VisibilitySolver


def build_report(solver: VisibilitySolver) -> dict:
    """Collect per-link visibility statistics.

    Args:
        solver: Solver with caches built

    Returns:
        Dictionary with report data
    """
    links = []
    for i, link in enumerate(solver.instance.links):
        cache = solver.cache(i)
        links.append({
            "link": i,
            "bodies": link.endpoints,
            "period_min": link.period / 60.0,
            "windows": len(cache.windows),
            "visible_fraction": cache.visible_fraction,
            "first_visibility": solver.next_visibility(i, 0.0),
            "first_communication": solver.next_communication(i, 0.0),
        })

    return {
        "num_bodies": len(solver.instance.bodies),
        "num_links": len(solver.instance.links),
        "lower_bound": solver.lower_bound(),
        "makespan_lower_bound": solver.makespan_lower_bound(),
        "links": links,
    }


def print_report(results: dict, step_size: float, build_time: float) -> None:
    """Print analysis report."""
    print("=" * 60)
    print("Link Visibility Report")
    print("=" * 60)
    print()
    print(f"  Bodies: {results['num_bodies']}")
    print(f"  Links: {results['num_links']}")
    print(f"  Step size: {step_size} s")
    print(f"  Cache build time: {build_time * 1000:.1f} ms")
    print()
    print(f"{'link':>5} {'bodies':>10} {'period':>9} {'windows':>8} {'visible':>8} {'first vis':>10} {'first comm':>11}")
    for row in results["links"]:
        first_vis = "never" if math.isinf(row["first_visibility"]) else f"{row['first_visibility']:.1f}s"
        first_comm = "never" if math.isinf(row["first_communication"]) else f"{row['first_communication']:.1f}s"
        bodies = f"{row['bodies'][0]}-{row['bodies'][1]}"
        print(
            f"{row['link']:>5} {bodies:>10} {row['period_min']:>7.1f}m "
            f"{row['windows']:>8} {row['visible_fraction'] * 100:>7.1f}% "
            f"{first_vis:>10} {first_comm:>11}"
        )
    print()
    print(f"  Earliest visibility (lower bound): {results['lower_bound']:.1f} s")
    print(f"  Makespan lower bound: {results['makespan_lower_bound']:.1f} s")
    print()
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Visibility report for an ISL instance")
    parser.add_argument("instance", nargs="?", type=Path, help="Instance file")
    parser.add_argument("--random", nargs=2, type=int, metavar=("BODIES", "LINKS"),
                        help="Generate a random instance instead of loading one")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--step", type=float, default=None, help="Sampling step (s)")
    parser.add_argument("--prune", action="store_true", help="Remove never visible links")
    parser.add_argument("--save", type=Path, default=None, help="Write the instance to a file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.random is not None:
        instance = Instance.random(*args.random, seed=args.seed)
    elif args.instance is not None:
        instance = Instance.load(args.instance)
    else:
        parser.error("give an instance file or --random BODIES LINKS")

    if args.prune:
        instance.remove_invalid_edges()

    if args.save is not None:
        instance.save(args.save)
        print(f"Instance saved to {args.save}")

    start = time.time()
    solver = VisibilitySolver(instance, step_size=args.step)
    build_time = time.time() - start

    print_report(build_report(solver), solver.step_size, build_time)


if __name__ == "__main__":
    main()
