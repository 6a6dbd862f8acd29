#!/usr/bin/env python3
"""
identmap Performance Benchmarks

Times IdentityMap against a builtin dict and a bisect-maintained sorted list
for the operations an ordered map is used for, scaling the workload until a
run takes longer than the time limit. Results are rendered with rich.

Usage:
    python scripts/benchmark.py              # Run all benchmarks
    python scripts/benchmark.py --config     # Show current benchmark configuration
    python scripts/benchmark.py --quiet      # Only show the final table

Configuration:
    Adjust the constants at the top of the file to change benchmark parameters.
"""

import argparse
import random
import sys
import time
from bisect import bisect_left
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

# Add the project root to the Python path
sys.path.insert(0, ".")

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from identmap import BoundedAllocator, IdentityMap

TIME_LIMIT_SECONDS = 0.5
STARTING_N = 1000
SCALE_FACTOR = 2
MAX_N = 200_000


@dataclass
class BenchmarkResult:
    """Throughput of one operation for one container at its largest workload."""

    container: str
    operation: str
    max_n: int
    operation_time: float
    operations_per_second: float


class SortedList:
    """Baseline: parallel key/value lists kept sorted with bisect."""

    def __init__(self):
        self.keys: List = []
        self.values: List = []

    def __setitem__(self, key, value):
        i = bisect_left(self.keys, key)
        if i < len(self.keys) and self.keys[i] == key:
            self.values[i] = value
        else:
            self.keys.insert(i, key)
            self.values.insert(i, value)

    def __getitem__(self, key):
        i = bisect_left(self.keys, key)
        if i < len(self.keys) and self.keys[i] == key:
            return self.values[i]
        raise KeyError(key)

    def __iter__(self):
        return iter(self.keys)


CONTAINERS: Dict[str, Callable] = {
    "IdentityMap": IdentityMap,
    "typed IdentityMap": lambda: IdentityMap(key_dtype="i8", value_dtype="i8"),
    "dict": dict,
    "bisect list": SortedList,
}


def _keys(n: int) -> List[int]:
    keys = list(range(n))
    random.Random(n).shuffle(keys)
    return keys


def _insert(factory: Callable, n: int) -> int:
    container = factory()
    for key in _keys(n):
        container[key] = key
    return n


def _lookup(factory: Callable, n: int) -> Tuple[int, float]:
    container = factory()
    keys = _keys(n)
    for key in keys:
        container[key] = key
    start = time.perf_counter()
    for key in keys:
        container[key]
    return n, time.perf_counter() - start


def _ordered_iteration(factory: Callable, n: int) -> Tuple[int, float]:
    container = factory()
    for key in _keys(n):
        container[key] = key
    start = time.perf_counter()
    # dict has to sort to produce key order
    if isinstance(container, dict):
        for _ in sorted(container):
            pass
    else:
        for _ in container:
            pass
    return n, time.perf_counter() - start


OPERATIONS = {
    "random insert": _insert,
    "lookup": _lookup,
    "ordered iteration": _ordered_iteration,
}


class IdentmapBenchmark:
    """Rich-formatted display for identmap benchmarking."""

    def __init__(self, quiet: bool = False):
        self.console = Console()
        self.quiet = quiet
        self.results: List[BenchmarkResult] = []

    def run_benchmarks(self):
        """Run every operation against every container and show the results."""
        start_time = time.time()
        self._display_header()

        for operation, func in OPERATIONS.items():
            for container, factory in CONTAINERS.items():
                result = self._run_adaptive_benchmark(container, operation, func, factory)
                self.results.append(result)
                self._display_benchmark_progress(result)

        self._display_final_results(start_time)
        self._display_reallocations()

    def _run_adaptive_benchmark(
        self, container: str, operation: str, func: Callable, factory: Callable
    ) -> BenchmarkResult:
        """Scale the workload until one run reaches the time limit."""
        n = STARTING_N
        while True:
            start = time.perf_counter()
            output = func(factory, n)
            elapsed = time.perf_counter() - start
            # Operations that exclude their setup return (count, timed seconds)
            if isinstance(output, tuple):
                ops, elapsed = output
            else:
                ops = output
            result = BenchmarkResult(container, operation, n, elapsed, ops / max(elapsed, 1e-9))
            if elapsed >= TIME_LIMIT_SECONDS or n * SCALE_FACTOR > MAX_N:
                return result
            n *= SCALE_FACTOR

    def _display_header(self):
        header = Panel(
            Align.center("identmap Performance Benchmark Suite"),
            title="identmap Benchmarks",
            border_style="blue",
        )
        self.console.print(header)
        self.console.print()

    def _display_benchmark_progress(self, result: BenchmarkResult):
        if self.quiet:
            return
        self.console.print(
            f"[green]✓[/green] {result.container} / {result.operation}: "
            f"{result.operations_per_second:,.0f} ops/sec ({result.max_n} items)"
        )

    def _display_final_results(self, start_time: float):
        elapsed = time.time() - start_time

        table = Table(title="Final Benchmark Results")
        table.add_column("Operation", style="cyan", no_wrap=True)
        table.add_column("Container", style="white")
        table.add_column("Max Workload", style="magenta", justify="right")
        table.add_column("Performance", style="green", justify="right")
        table.add_column("vs dict", style="yellow", justify="right")

        baseline = {
            r.operation: r.operations_per_second for r in self.results if r.container == "dict"
        }
        for result in self.results:
            ratio = result.operations_per_second / baseline[result.operation]
            table.add_row(
                result.operation,
                result.container,
                f"{result.max_n:,}",
                f"{result.operations_per_second:,.0f} ops/sec",
                f"{ratio:.2f}x",
            )

        self.console.print()
        self.console.print(table)
        self.console.print()
        self.console.print(f"[dim]Benchmark completed in {elapsed:.2f} seconds[/dim]")

    def _display_reallocations(self):
        """Show how few reallocations geometric growth needs."""
        self.console.print()
        self.console.print("Buffer Growth")
        for n in (1_000, 10_000, 100_000):
            alloc = BoundedAllocator()
            m = IdentityMap(allocator=alloc)
            for key in range(n):
                m[key] = None
            self.console.print(
                f"┣━ {n:,} inserts: {alloc.stats['grows']} grows, "
                f"peak {alloc.peak // 1024:,} KB, capacity {m.capacity:,}"
            )
        self.console.print()


def print_config():
    """Print the current benchmark configuration."""
    print("identmap Benchmark Configuration:")
    print(f"  TIME_LIMIT_SECONDS: {TIME_LIMIT_SECONDS}")
    print(f"  STARTING_N: {STARTING_N}")
    print(f"  SCALE_FACTOR: {SCALE_FACTOR}")
    print(f"  MAX_N: {MAX_N}")


def main():
    """Main entry point for the benchmark script."""
    parser = argparse.ArgumentParser(description="identmap Performance Benchmarks")
    parser.add_argument(
        "--config", action="store_true", help="Show current benchmark configuration"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output, show only final results",
    )

    args = parser.parse_args()

    if args.config:
        print_config()
        return

    if not args.quiet:
        print_config()
        print()

    IdentmapBenchmark(quiet=args.quiet).run_benchmarks()


if __name__ == "__main__":
    main()
