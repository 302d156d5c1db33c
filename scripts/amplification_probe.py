"""Amplification probe for the bundled adversarial protobuf payload.

Parses ``repeated-embedded-amplification.bin`` as a
``VulnerableRequest`` one or more times and reports elapsed time,
process memory delta, and the derived amplification ratios. The payload
repeats field 3 (``embedded``) thousands of times; each occurrence is
a few bytes on the wire and a full message object after parsing.

Usage:
    python -m scripts.amplification_probe [--tracemalloc] [iterations]

    iterations: number of times to parse (default: 1,
        suggested: 1000-10000 to simulate a repeated DoS)
    --tracemalloc: sample memory with tracemalloc instead of process
        RSS. Exact allocation counts, but parse timings are inflated.

Exit codes:
    0 — Completed, including a reported parse failure.
    1 — Invalid iterations argument or missing fixture.
"""

import argparse
import logging
import sys

from core.amplification import (
    AmplificationAnalyzer,
    AmplificationSample,
    ImpactReport,
    compute_impact,
    format_amplification,
)
from core.config import AmplificationConfig, build_config
from core.exceptions import ConfigurationError
from core.memory import MemoryProbe, RssProbe, TracemallocProbe
from infra.codec import parser_for
from infra.fixtures import load_fixture
from infra.messages import VulnerableRequest
from scripts.cli_utils import UsageParser

logger: logging.Logger = logging.getLogger(__name__)

_USAGE: str = (
    "Usage: amplification_probe [--tracemalloc] [iterations]\n"
    "  iterations: number of times to parse "
    "(default: 1, suggested: 1000-10000 for DoS)"
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser: argparse.ArgumentParser = UsageParser(
        description="Repeated-parse amplification probe",
        usage_text=_USAGE,
    )
    parser.add_argument(
        "iterations",
        nargs="?",
        type=int,
        default=1,
        help="Number of parses (default: 1)",
    )
    parser.add_argument(
        "--tracemalloc",
        action="store_true",
        help="Sample memory with tracemalloc (slows parsing several times)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the amplification probe.

    Returns:
        Process exit code.
    """
    args: argparse.Namespace = parse_args(argv)
    try:
        config: AmplificationConfig = build_config(
            AmplificationConfig,
            iterations=args.iterations,
            tracemalloc_enabled=args.tracemalloc,
        )
        payload: bytes = load_fixture(config.fixture_name)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}")
        print(_USAGE)
        return 1

    print("Protobuf Amplification Probe")
    print("=" * 42)
    print("")
    print(f"Loaded fixture {config.fixture_name}: {len(payload):,} bytes")
    print(f"Parse iterations: {config.iterations:,}")

    probe: MemoryProbe = RssProbe()
    if config.tracemalloc_enabled:
        probe = TracemallocProbe()
        print("Memory probe: tracemalloc (parse timings are inflated)")
    else:
        print("Memory probe: process RSS")

    if config.iterations > 1:
        print("")
        print(
            f"WARNING: Running {config.iterations:,} iterations "
            "to simulate repeated DoS attack"
        )
        print("Expect significant GC pressure and memory consumption!")

    print("")
    print("Parsing with VulnerableRequest (has repeated fields)...")

    analyzer: AmplificationAnalyzer = AmplificationAnalyzer(
        parse=parser_for(VulnerableRequest),
        probe=probe,
        settle_seconds=config.settle_seconds,
        reporter=print,
    )
    sample: AmplificationSample = analyzer.analyze(payload, config.iterations)
    impact: ImpactReport = compute_impact(sample)
    print(format_amplification(sample, impact))
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    sys.exit(main())
