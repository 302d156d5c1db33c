"""Statistics engine for parse latency samples.

Turns per-round timing samples into a :class:`BenchmarkReport`:
min / mean / median / P95 / P99 / max, population standard deviation,
operations per second and MB/s throughput.

Percentile method:
    Nearest-rank on the ascending per-operation latencies, no
    interpolation::

        index = ceil(p / 100 * n) - 1, clamped to [0, n - 1]

    Round counts are small (5 by default). Nearest-rank always returns
    an observed sample, so P95/P99 stay reproducible and testable at
    that size. Linear interpolation would shift them by sub-percent
    margins.

Dispersion:
    Population formulas (``statistics.fmean`` / ``statistics.pstdev``)
    over all per-operation samples, not over round aggregates.

Example:
    >>> report = summarize([1.0, 2.0, 3.0, 4.0, 5.0], batch_size=1)
    >>> report.min_us, report.median_us, report.max_us
    (1.0, 3.0, 5.0)
    >>> summarize([], batch_size=1).has_data
    False
"""

import math
import statistics
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from core.config import BenchmarkConfig

_NS_PER_US: float = 1_000.0
_BYTES_PER_MB: float = 1024.0 * 1024.0


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class LatencySample(BaseModel):
    """Elapsed time of one measured round of ``batch_size`` parses.

    Example:
        >>> sample = LatencySample(duration_ns=250_000, batch_size=100)
        >>> sample.per_op_us
        2.5
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    duration_ns: int = Field(ge=0, description="Round duration (ns)")
    batch_size: int = Field(gt=0, description="Parses in the round")

    @property
    def duration_us(self) -> float:
        return self.duration_ns / _NS_PER_US

    @property
    def per_op_us(self) -> float:
        return self.duration_us / self.batch_size


class ParseFailure(BaseModel):
    """Codec failure that stopped a measurement loop.

    Attributes:
        iteration: 1-based attempt number that failed.
        success_count: Parses that completed before the failure.
        fail_count: Failed parses (always 1: loops stop on first).
        elapsed_ns: Time from the start of the failing phase through
            the failed attempt. For the driver that is the warmup or
            the measurement phase; for the analyzer, the parse loop.
        error_type: Class name of the underlying codec exception.
        message: Codec error message.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    iteration: int = Field(gt=0)
    success_count: int = Field(ge=0)
    fail_count: int = Field(ge=0)
    elapsed_ns: int = Field(ge=0)
    error_type: str
    message: str

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_ns / 1_000_000.0


class BenchmarkReport(BaseModel):
    """Summary statistics for one benchmark run. All latencies in us.

    Attributes:
        has_data: ``False`` when no samples were collected; every
            numeric field is then zero.
        num_samples: Number of rounds summarized.
        batch_size: Parses per round.
        message_size_bytes: Serialized size of the parsed message.
        ops_per_sec: ``1_000_000 / mean_us``.
        mb_per_sec: ``ops_per_sec * message_size_bytes / 2**20``.
        config: Echo of the driver configuration, if any.
        failure: Codec failure that stopped the run early, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    has_data: bool = Field(description="False when no samples were collected")
    num_samples: int = Field(default=0, ge=0)
    batch_size: int = Field(default=0, ge=0)
    message_size_bytes: int = Field(default=0, ge=0)
    min_us: float = 0.0
    mean_us: float = 0.0
    median_us: float = 0.0
    p95_us: float = 0.0
    p99_us: float = 0.0
    max_us: float = 0.0
    stddev_us: float = 0.0
    ops_per_sec: float = 0.0
    mb_per_sec: float = 0.0
    config: BenchmarkConfig | None = None
    failure: ParseFailure | None = None

    @classmethod
    def empty(
        cls, batch_size: int = 0, message_size_bytes: int = 0,
    ) -> "BenchmarkReport":
        """Report for a run that collected no samples."""
        return cls(
            has_data=False,
            batch_size=batch_size,
            message_size_bytes=message_size_bytes,
        )


# ---------------------------------------------------------------------------
# Percentile (nearest rank)
# ---------------------------------------------------------------------------


def nearest_rank_percentile(
    sorted_values: Sequence[float], percentile: float,
) -> float:
    """Select the nearest-rank percentile from ascending values.

    Args:
        sorted_values: Ascending values. Must not be empty.
        percentile: Percentile in ``[0, 100]``, e.g. ``99`` for P99.

    Raises:
        ValueError: If ``sorted_values`` is empty or ``percentile`` is
            outside ``[0, 100]``.

    Example:
        >>> nearest_rank_percentile([1.0, 2.0, 3.0, 4.0, 5.0], 50)
        3.0
        >>> nearest_rank_percentile([1.0, 2.0, 3.0, 4.0, 5.0], 99)
        5.0
        >>> nearest_rank_percentile([7.0], 0)
        7.0
    """
    if not sorted_values:
        raise ValueError("sorted_values must not be empty")
    if not 0.0 <= percentile <= 100.0:
        raise ValueError(f"percentile must be in [0, 100], got {percentile}")

    n: int = len(sorted_values)
    index: int = math.ceil(percentile / 100.0 * n) - 1
    index = max(0, min(index, n - 1))
    return sorted_values[index]


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def summarize(
    samples_us: Sequence[float],
    batch_size: int,
    message_size_bytes: int = 0,
) -> BenchmarkReport:
    """Summarize round durations into a :class:`BenchmarkReport`.

    Args:
        samples_us: Elapsed duration of each round, in microseconds,
            in collection order.
        batch_size: Parses per round. Per-operation latency is
            ``round duration / batch_size``.
        message_size_bytes: Serialized message size for MB/s.

    Returns:
        The report. Zero samples yield :meth:`BenchmarkReport.empty`.

    Raises:
        ValueError: If ``batch_size`` is not positive.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be > 0, got {batch_size}")
    if not samples_us:
        return BenchmarkReport.empty(
            batch_size=batch_size, message_size_bytes=message_size_bytes,
        )

    per_op: list[float] = sorted(s / batch_size for s in samples_us)
    mean_us: float = statistics.fmean(per_op)
    stddev_us: float = statistics.pstdev(per_op, mu=mean_us)

    ops_per_sec: float = 1_000_000.0 / mean_us if mean_us > 0 else 0.0
    mb_per_sec: float = ops_per_sec * message_size_bytes / _BYTES_PER_MB

    return BenchmarkReport(
        has_data=True,
        num_samples=len(per_op),
        batch_size=batch_size,
        message_size_bytes=message_size_bytes,
        min_us=per_op[0],
        mean_us=mean_us,
        median_us=nearest_rank_percentile(per_op, 50),
        p95_us=nearest_rank_percentile(per_op, 95),
        p99_us=nearest_rank_percentile(per_op, 99),
        max_us=per_op[-1],
        stddev_us=stddev_us,
        ops_per_sec=ops_per_sec,
        mb_per_sec=mb_per_sec,
    )


def summarize_samples(
    samples: Sequence[LatencySample], message_size_bytes: int = 0,
) -> BenchmarkReport:
    """Summarize :class:`LatencySample` rounds sharing one batch size.

    Raises:
        ValueError: If the samples mix batch sizes.
    """
    if not samples:
        return BenchmarkReport.empty(message_size_bytes=message_size_bytes)

    batch_sizes: set[int] = {s.batch_size for s in samples}
    if len(batch_sizes) != 1:
        raise ValueError(f"samples mix batch sizes: {sorted(batch_sizes)}")

    return summarize(
        [s.duration_us for s in samples],
        batch_size=samples[0].batch_size,
        message_size_bytes=message_size_bytes,
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def format_report(report: BenchmarkReport) -> str:
    """Render the statistics table printed at the end of a run."""
    lines: list[str] = ["", "=== Benchmark Results ==="]

    if not report.has_data:
        lines.append("No data collected")
    else:
        lines.append("")
        lines.append("Latency per operation (us):")
        lines.append(f"  Min:    {report.min_us:8.2f} us")
        lines.append(f"  Mean:   {report.mean_us:8.2f} us")
        lines.append(f"  Median: {report.median_us:8.2f} us")
        lines.append(f"  P95:    {report.p95_us:8.2f} us")
        lines.append(f"  P99:    {report.p99_us:8.2f} us")
        lines.append(f"  Max:    {report.max_us:8.2f} us")
        lines.append(f"  StdDev: {report.stddev_us:8.2f} us")
        lines.append("")
        lines.append("Throughput:")
        lines.append(f"  Operations/sec: {report.ops_per_sec:,.0f} ops/s")
        lines.append(f"  Throughput:     {report.mb_per_sec:.2f} MB/s")

    config: BenchmarkConfig | None = report.config
    if config is not None:
        lines.append("")
        lines.append("Configuration:")
        lines.append(f"  Warmup iterations:      {config.warmup_iterations:,}")
        lines.append(f"  Measurement iterations: {config.batch_size:,} per round")
        lines.append(f"  Benchmark rounds:       {config.rounds}")
        lines.append(f"  Total operations:       {config.total_operations:,}")
        lines.append(f"  Tree depth:             {config.tree_depth + 1} levels")
        if report.message_size_bytes:
            lines.append(f"  Message size:           {report.message_size_bytes:,} bytes")

    failure: ParseFailure | None = report.failure
    if failure is not None:
        lines.append("")
        lines.append("Run aborted by codec failure:")
        lines.append(f"  Failed at iteration: {failure.iteration:,}")
        lines.append(f"  Successful parses:   {failure.success_count:,}")
        lines.append(f"  Failed parses:       {failure.fail_count:,}")
        lines.append(f"  Elapsed in phase:    {failure.elapsed_ms:.2f} ms")
        lines.append(f"  Error:               {failure.error_type}: {failure.message}")

    return "\n".join(lines)


def report_to_json(report: BenchmarkReport) -> str:
    return report.model_dump_json(indent=2)


def report_from_json(json_str: str) -> BenchmarkReport:
    return BenchmarkReport.model_validate_json(json_str)
