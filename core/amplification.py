"""Amplification analyzer for adversarial protobuf payloads.

Parses one fixed payload repeatedly and relates the time and memory
spent to the payload's size on the wire. A payload whose repeated
embedded-message fields cost a few bytes each but a full message
object after parsing shows a large memory amplification ratio.

Algorithm:
    1. Reclamation pass + settle pause, start the memory probe, read
       the baseline footprint and gen-0 GC count.
    2. Parse ``iterations`` times. Only the last result is retained.
    3. On the first :class:`~infra.codec.CodecError` stop at once,
       count the failure and log it with its stack trace.
    4. Read the ending footprint and elapsed time in every case.

Derived metrics (:func:`compute_impact`)::

    memory_amplification    = memory_delta_kb / (payload_bytes / 1024)
    throughput_kbps         = (payload_bytes / 1024 * completed) / (elapsed_ms / 1000)
    total_data_processed_mb = payload_bytes * completed / 2**20

Every division is guarded; a zero denominator yields ``0.0``.

Example:
    >>> sample = AmplificationSample(
    ...     payload_size_bytes=2048, iterations=4, elapsed_ns=2_000_000,
    ...     memory_delta_bytes=8192, success_count=4, fail_count=0,
    ... )
    >>> impact = compute_impact(sample)
    >>> impact.memory_amplification
    4.0
    >>> impact.total_data_processed_mb
    0.0078125
"""

import logging
import time
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from core.memory import MemoryProbe, RssProbe, gen0_collections, stabilize
from core.progress import Reporter, decile_step, silent
from core.statistics import ParseFailure
from infra.codec import CodecError

logger: logging.Logger = logging.getLogger(__name__)

Clock = Callable[[], int]

_BYTES_PER_KB: float = 1024.0
_BYTES_PER_MB: float = 1024.0 * 1024.0
_NS_PER_MS: float = 1_000_000.0


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class AmplificationSample(BaseModel):
    """Raw measurements of one analyzer run.

    Attributes:
        payload_size_bytes: Size of the payload on the wire.
        iterations: Parses requested.
        elapsed_ns: Time spent in the parse loop.
        memory_delta_bytes: Ending minus baseline probe reading. Can be
            negative when reclamation ran during the loop.
        success_count: Parses that completed.
        fail_count: Parses that failed (0 or 1).
        gc_collections: Gen-0 collections during the loop.
        failure: The failure that stopped the loop, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    payload_size_bytes: int = Field(ge=0)
    iterations: int = Field(ge=0)
    elapsed_ns: int = Field(ge=0)
    memory_delta_bytes: int
    success_count: int = Field(ge=0)
    fail_count: int = Field(ge=0)
    gc_collections: int = Field(default=0, ge=0)
    failure: ParseFailure | None = None

    @property
    def completed_iterations(self) -> int:
        return self.success_count

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_ns / _NS_PER_MS

    @property
    def memory_delta_kb(self) -> float:
        return self.memory_delta_bytes / _BYTES_PER_KB


class ImpactReport(BaseModel):
    """Amplification ratios derived from an :class:`AmplificationSample`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    completed_iterations: int = Field(ge=0)
    memory_delta_kb: float
    memory_amplification: float
    throughput_kbps: float = Field(ge=0.0)
    total_data_processed_mb: float = Field(ge=0.0)
    avg_parse_ms: float = Field(ge=0.0)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class AmplificationAnalyzer:
    """Repeated-parse amplification measurement.

    Args:
        parse: Parse entry point, ``(payload) -> message``. Must raise
            :class:`CodecError` on rejected input.
        probe: Memory footprint source. Defaults to
            :class:`~core.memory.RssProbe`, which adds no per-allocation
            overhead to the timed loop.
        settle_seconds: Pause after the reclamation pass.
        reporter: Receives progress lines. Silent if omitted.
        clock: Monotonic nanosecond clock.
    """

    def __init__(
        self,
        parse: Callable[[bytes], object],
        probe: MemoryProbe | None = None,
        settle_seconds: float = 0.1,
        reporter: Reporter | None = None,
        clock: Clock = time.perf_counter_ns,
    ) -> None:
        self._parse: Callable[[bytes], object] = parse
        self._probe: MemoryProbe = probe if probe is not None else RssProbe()
        self._settle_seconds: float = settle_seconds
        self._report: Reporter = reporter if reporter is not None else silent
        self._clock: Clock = clock
        self.last_result: object = None

    def analyze(self, payload: bytes, iterations: int) -> AmplificationSample:
        """Parse ``payload`` ``iterations`` times and measure the cost.

        Raises:
            ValueError: If ``iterations`` is negative.
        """
        if iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {iterations}")

        stabilize(self._settle_seconds)
        self._probe.start()
        try:
            mem_before: int = self._probe.current_bytes()
            gc_before: int = gen0_collections()
            success_count, failure, elapsed_ns = self._parse_loop(payload, iterations)
            mem_after: int = self._probe.current_bytes()
            gc_delta: int = gen0_collections() - gc_before
        finally:
            self._probe.stop()

        return AmplificationSample(
            payload_size_bytes=len(payload),
            iterations=iterations,
            elapsed_ns=elapsed_ns,
            memory_delta_bytes=mem_after - mem_before,
            success_count=success_count,
            fail_count=0 if failure is None else failure.fail_count,
            gc_collections=max(0, gc_delta),
            failure=failure,
        )

    def _parse_loop(
        self, payload: bytes, iterations: int,
    ) -> tuple[int, ParseFailure | None, int]:
        parse = self._parse
        clock = self._clock
        step: int = decile_step(iterations)
        success_count: int = 0
        start_ns: int = clock()

        for i in range(iterations):
            if step and i % step == 0:
                elapsed_ms: float = (clock() - start_ns) / _NS_PER_MS
                self._report(
                    f"  Progress: {i:,}/{iterations:,} ({elapsed_ms:.0f} ms elapsed)"
                )
            try:
                self.last_result = parse(payload)
            except CodecError as exc:
                elapsed_ns: int = clock() - start_ns
                failure = ParseFailure(
                    iteration=success_count + 1,
                    success_count=success_count,
                    fail_count=1,
                    elapsed_ns=elapsed_ns,
                    error_type=exc.error_type,
                    message=exc.message,
                )
                logger.error(
                    "Parse failed at iteration %d/%d after %.2f ms",
                    failure.iteration,
                    iterations,
                    failure.elapsed_ms,
                    exc_info=exc,
                )
                return success_count, failure, elapsed_ns
            success_count += 1

        return success_count, None, clock() - start_ns


# ---------------------------------------------------------------------------
# Impact
# ---------------------------------------------------------------------------


def compute_impact(sample: AmplificationSample) -> ImpactReport:
    """Derive amplification ratios from raw measurements."""
    payload_kb: float = sample.payload_size_bytes / _BYTES_PER_KB
    completed: int = sample.completed_iterations
    elapsed_ms: float = sample.elapsed_ms
    memory_delta_kb: float = sample.memory_delta_kb

    memory_amplification: float = (
        memory_delta_kb / payload_kb if payload_kb > 0 else 0.0
    )
    throughput_kbps: float = (
        payload_kb * completed / (elapsed_ms / 1000.0) if elapsed_ms > 0 else 0.0
    )
    avg_parse_ms: float = elapsed_ms / completed if completed > 0 else 0.0

    return ImpactReport(
        completed_iterations=completed,
        memory_delta_kb=memory_delta_kb,
        memory_amplification=memory_amplification,
        throughput_kbps=throughput_kbps,
        total_data_processed_mb=(
            sample.payload_size_bytes * completed / _BYTES_PER_MB
        ),
        avg_parse_ms=avg_parse_ms,
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

_USAGE_TIPS: tuple[str, ...] = (
    "1. Single parse (observe the payload once):",
    "   python -m scripts.amplification_probe",
    "",
    "2. Repeated parse DoS simulation (amplify GC pressure):",
    "   python -m scripts.amplification_probe 1000",
    "",
    "3. With allocator statistics from the interpreter:",
    "   PYTHONMALLOCSTATS=1 python -m scripts.amplification_probe 5000",
)


def format_amplification(
    sample: AmplificationSample, impact: ImpactReport,
) -> str:
    """Render results, impact analysis, and the usage tips footer."""
    lines: list[str] = []
    failure: ParseFailure | None = sample.failure

    lines.append("")
    lines.append("=" * 50)
    lines.append("Results:")
    lines.append("=" * 50)
    lines.append(f"Total parse time: {sample.elapsed_ms:.2f} ms")
    lines.append(f"Average time per parse: {impact.avg_parse_ms:.3f} ms")
    lines.append(f"Success count: {sample.success_count}/{sample.iterations}")
    if failure is not None:
        lines.append(
            f"FAILED at iteration {failure.iteration}: "
            f"{failure.error_type}: {failure.message}"
        )
    lines.append(f"Memory delta: {impact.memory_delta_kb:.0f} KB")
    lines.append(f"GC gen-0 collections: {sample.gc_collections}")

    lines.append("")
    lines.append("=" * 50)
    lines.append("Impact Analysis:")
    lines.append("=" * 50)
    lines.append(f"  - Memory amplification: {impact.memory_amplification:.2f}x")
    lines.append(f"  - Parse throughput: {impact.throughput_kbps:.2f} KB/s")
    lines.append(
        f"  - Total data processed: {impact.total_data_processed_mb:.2f} MB"
    )

    lines.append("")
    lines.append("=" * 50)
    lines.append("Usage Tips:")
    lines.append("=" * 50)
    lines.extend(_USAGE_TIPS)

    return "\n".join(lines)
