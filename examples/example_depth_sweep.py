"""Example: Parse latency across synthetic tree depths.

Runs the benchmark driver once per depth and prints one summary row
per run, showing how parse cost grows with the 8-way fan-out:

    depth 0  ->        1 node
    depth 1  ->        9 nodes
    depth 2  ->       73 nodes
    depth 3  ->      585 nodes
    depth 4  ->    4,681 nodes

Usage:
    python -m examples.example_depth_sweep
    python -m examples.example_depth_sweep --max-depth 5 --rounds 10
    python -m examples.example_depth_sweep --batch-size 20

Design notes:
    - Each depth gets its own driver and payload; nothing is shared
      between runs.
    - The reporter is silenced so only the table is printed.
    - Depths above 5 take seconds to minutes per run in pure Python.
"""

import argparse
import logging

from core.config import BenchmarkConfig, build_config
from core.driver import BenchmarkDriver
from core.statistics import BenchmarkReport
from core.synthetic import build_request, expected_node_count
from infra.codec import parser_for, serialize
from infra.messages import BenchmarkRequest

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)

_HEADER: str = (
    f"{'Depth':>5}  {'Nodes':>10}  {'Size (B)':>10}  "
    f"{'Median us':>10}  {'P99 us':>10}  {'ops/s':>10}  {'MB/s':>8}"
)


def _row(depth: int, report: BenchmarkReport) -> str:
    if report.failure is not None:
        return (
            f"{depth:>5}  {expected_node_count(depth):>10,}  "
            f"{report.message_size_bytes:>10,}  FAILED: "
            f"{report.failure.error_type}: {report.failure.message}"
        )
    return (
        f"{depth:>5}  {expected_node_count(depth):>10,}  "
        f"{report.message_size_bytes:>10,}  "
        f"{report.median_us:>10.2f}  {report.p99_us:>10.2f}  "
        f"{report.ops_per_sec:>10,.0f}  {report.mb_per_sec:>8.2f}"
    )


def main() -> None:
    """Run the depth sweep."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Parse latency across synthetic tree depths",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=4,
        help="Deepest tree to benchmark (default: 4)",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=5,
        help="Measured rounds per depth (default: 5)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=50,
        help="Parses per round (default: 50)",
    )
    args: argparse.Namespace = parser.parse_args()

    parse = parser_for(BenchmarkRequest)
    print(_HEADER)
    print("-" * len(_HEADER))

    for depth in range(args.max_depth + 1):
        config: BenchmarkConfig = build_config(
            BenchmarkConfig,
            warmup_iterations=args.batch_size,
            batch_size=args.batch_size,
            rounds=args.rounds,
            tree_depth=depth,
        )
        payload: bytes = serialize(build_request(depth=depth))
        logger.info("Depth %d: %d bytes", depth, len(payload))

        report: BenchmarkReport = BenchmarkDriver(config, parse).run_payload(payload)
        print(_row(depth, report))


if __name__ == "__main__":
    main()
