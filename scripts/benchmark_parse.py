"""Parse latency benchmark for the nested synthetic message.

Builds the eight-level synthetic ``BenchmarkRequest`` once, serializes
it once, then runs warmup, a stabilization pass, and timed rounds of
``BenchmarkRequest().parse(payload)`` against that same buffer.

Usage:
    python -m scripts.benchmark_parse
    python -m scripts.benchmark_parse --depth 4 --rounds 10
    python -m scripts.benchmark_parse --json

Output:
    Parameters, per-round progress and the statistics table to stdout
    (or the JSON report with ``--json``). Logs to stderr.

Exit codes:
    0 — Completed, including a reported mid-run parse failure.
    1 — Invalid argument (usage printed to stdout) or configuration.
"""

import argparse
import logging
import sys

from core.config import BenchmarkConfig, build_config
from core.driver import BenchmarkDriver
from core.exceptions import ConfigurationError
from core.statistics import BenchmarkReport, format_report, report_to_json
from core.synthetic import FAN_OUT, build_request
from infra.codec import parser_for, serialize
from infra.messages import BenchmarkRequest
from scripts.cli_utils import UsageParser

logger: logging.Logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    defaults: BenchmarkConfig = BenchmarkConfig()
    parser: argparse.ArgumentParser = UsageParser(
        description="Protobuf parse latency benchmark (synthetic nested tree)",
    )
    parser.add_argument(
        "--warmup",
        type=int,
        default=defaults.warmup_iterations,
        help=f"Warmup parses (default: {defaults.warmup_iterations})",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=defaults.batch_size,
        help=f"Parses per measured round (default: {defaults.batch_size})",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=defaults.rounds,
        help=f"Measured rounds (default: {defaults.rounds})",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=defaults.tree_depth,
        help=(
            f"Remaining tree depth below the root "
            f"(default: {defaults.tree_depth}, i.e. "
            f"{defaults.tree_depth + 1} levels)"
        ),
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of the table",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the latency benchmark.

    Returns:
        Process exit code.
    """
    args: argparse.Namespace = parse_args(argv)
    try:
        config: BenchmarkConfig = build_config(
            BenchmarkConfig,
            warmup_iterations=args.warmup,
            batch_size=args.batch_size,
            rounds=args.rounds,
            tree_depth=args.depth,
        )
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}")
        return 1

    print("=== Protobuf Parsing Benchmark ===")
    print("")
    print("Preparing benchmark request data...")
    request: BenchmarkRequest = build_request(
        seed_name=config.seed_name,
        seed_value=config.seed_value,
        depth=config.tree_depth,
    )
    payload: bytes = serialize(request)
    del request

    print("Data prepared:")
    print(f"  Serialized size: {len(payload):,} bytes")
    print(f"  Tree depth: {config.tree_depth + 1} levels")
    print(f"  Branching factor: {FAN_OUT} children per node")
    print("")

    driver: BenchmarkDriver = BenchmarkDriver(
        config=config,
        parse=parser_for(BenchmarkRequest),
        reporter=print,
    )
    report: BenchmarkReport = driver.run_payload(payload)

    if args.json:
        print(report_to_json(report))
    else:
        print(format_report(report))

    if report.failure is not None:
        logger.warning(
            "Benchmark stopped early after %d successful parses",
            report.failure.success_count,
        )
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    sys.exit(main())
