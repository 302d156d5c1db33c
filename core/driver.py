"""Benchmark driver for steady-state parse latency.

Runs the protocol::

    INIT -> WARMUP -> STABILIZE -> MEASURE (x rounds) -> REPORT

- **INIT** serializes the message once. The resulting ``bytes`` buffer
  is immutable and reused by every warmup and measured parse, so only
  parse cost is ever timed.
- **WARMUP** parses ``warmup_iterations`` times. CPython 3.11+ adaptive
  specialization and allocator free lists need this before timings
  are stable.
- **STABILIZE** runs a full ``gc.collect()`` and a short pause so
  warmup garbage does not leak into measured rounds.
- **MEASURE** times ``rounds`` batches of ``batch_size`` parses with
  ``time.perf_counter_ns()``. One :class:`LatencySample` per round.
- **REPORT** hands the samples to :func:`core.statistics.summarize_samples`.

Result sink:
    Every parse result is written to a :class:`ResultSink`. Nothing
    reads it back; it keeps each result reachable until the next
    write, so the work done per iteration matches a real consumer.

Failure semantics:
    A :class:`~infra.codec.CodecError` stops the loop at once. The
    report summarizes the rounds completed so far and carries a
    :class:`~core.statistics.ParseFailure` with success/failure counts
    and the time elapsed in the failing phase (warmup or measurement;
    the settle pause is never included). The error is logged with its
    stack trace and never retried.

Threading:
    Single-threaded. Rounds never run concurrently.

Example:
    >>> from infra.codec import parser_for
    >>> from infra.messages import BenchmarkRequest
    >>> from core.synthetic import build_request
    >>> driver = BenchmarkDriver(
    ...     config=BenchmarkConfig(warmup_iterations=2, batch_size=2,
    ...                            rounds=2, tree_depth=1, settle_seconds=0),
    ...     parse=parser_for(BenchmarkRequest),
    ... )
    >>> report = driver.run(build_request(depth=1))
    >>> report.num_samples
    2
"""

import logging
import time
from enum import Enum
from typing import Callable

import betterproto

from core.config import BenchmarkConfig
from core.memory import stabilize
from core.progress import PROGRESS_THRESHOLD, Reporter, silent
from core.statistics import (
    BenchmarkReport,
    LatencySample,
    ParseFailure,
    summarize_samples,
)
from infra.codec import CodecError, serialize

logger: logging.Logger = logging.getLogger(__name__)

Clock = Callable[[], int]
"""Monotonic nanosecond clock."""


class BenchmarkPhase(str, Enum):
    """Driver state. Advances strictly forward within one run."""

    INIT = "INIT"
    WARMUP = "WARMUP"
    STABILIZE = "STABILIZE"
    MEASURE = "MEASURE"
    REPORT = "REPORT"


class ResultSink:
    """Write-only holder for parse results.

    Example:
        >>> sink = ResultSink()
        >>> sink.write("parsed")
        >>> sink.writes
        1
    """

    __slots__ = ("_last", "writes")

    def __init__(self) -> None:
        self._last: object = None
        self.writes: int = 0

    def write(self, value: object) -> None:
        self._last = value
        self.writes += 1


class BenchmarkDriver:
    """Warmup / stabilize / measure driver for one parse entry point.

    Args:
        config: Benchmark configuration.
        parse: Parse entry point, ``(payload) -> message``. Must raise
            :class:`CodecError` on rejected input.
        sink: Result sink. A private one is created if omitted.
        reporter: Receives progress lines. Silent if omitted.
        clock: Monotonic nanosecond clock.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        parse: Callable[[bytes], object],
        sink: ResultSink | None = None,
        reporter: Reporter | None = None,
        clock: Clock = time.perf_counter_ns,
    ) -> None:
        self._config: BenchmarkConfig = config
        self._parse: Callable[[bytes], object] = parse
        self._sink: ResultSink = sink if sink is not None else ResultSink()
        self._report: Reporter = reporter if reporter is not None else silent
        self._clock: Clock = clock
        self._phase: BenchmarkPhase = BenchmarkPhase.INIT

    @property
    def phase(self) -> BenchmarkPhase:
        return self._phase

    @property
    def sink(self) -> ResultSink:
        return self._sink

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, message: betterproto.Message) -> BenchmarkReport:
        """Benchmark parsing of ``message``'s serialized form.

        Returns:
            The summarized report with the configuration echoed. On a
            codec failure the report covers completed rounds only and
            ``report.failure`` is set.
        """
        self._enter(BenchmarkPhase.INIT)
        payload: bytes = serialize(message)
        return self.run_payload(payload)

    def run_payload(self, payload: bytes) -> BenchmarkReport:
        """Benchmark parsing of an already serialized ``payload``."""
        config: BenchmarkConfig = self._config
        samples: list[LatencySample] = []
        successes: int = 0
        failure: ParseFailure | None = None

        # WARMUP
        self._enter(BenchmarkPhase.WARMUP)
        warmup_started_ns: int = self._clock()
        self._report(f"Warming up ({config.warmup_iterations:,} iterations)...")
        completed, error = self._run_batch(payload, config.warmup_iterations)
        successes += completed
        if error is not None:
            failure = self._fail(successes, warmup_started_ns, error)
        else:
            self._report("Warmup complete.")

        # STABILIZE
        if failure is None:
            self._enter(BenchmarkPhase.STABILIZE)
            stabilize(config.settle_seconds)

        # MEASURE
        if failure is None:
            self._enter(BenchmarkPhase.MEASURE)
            self._report(
                f"Running benchmark ({config.rounds} rounds of "
                f"{config.batch_size:,} iterations each)..."
            )
            failure = self._measure(payload, samples, successes)

        # REPORT
        self._enter(BenchmarkPhase.REPORT)
        report: BenchmarkReport = summarize_samples(
            samples, message_size_bytes=len(payload),
        )
        return report.model_copy(
            update={
                "config": config,
                "failure": failure,
                "batch_size": config.batch_size,
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _measure(
        self,
        payload: bytes,
        samples: list[LatencySample],
        successes: int,
    ) -> ParseFailure | None:
        config: BenchmarkConfig = self._config
        started_ns: int = self._clock()
        rounds: int = config.rounds
        stride: int = 1
        if config.total_operations > PROGRESS_THRESHOLD and rounds >= 10:
            stride = rounds // 10

        for round_index in range(rounds):
            t0: int = self._clock()
            completed, error = self._run_batch(payload, config.batch_size)
            t1: int = self._clock()
            successes += completed

            if error is not None:
                return self._fail(successes, started_ns, error)

            sample = LatencySample(duration_ns=t1 - t0, batch_size=config.batch_size)
            samples.append(sample)

            if round_index % stride == 0 or round_index == rounds - 1:
                self._report(
                    f"Round {round_index + 1:2d}/{rounds}: "
                    f"{sample.duration_ns / 1_000_000:.2f} ms total, "
                    f"{sample.per_op_us:.2f} us/op"
                )
        return None

    def _run_batch(
        self, payload: bytes, count: int,
    ) -> tuple[int, CodecError | None]:
        """Parse ``payload`` ``count`` times into the sink.

        Returns:
            ``(completed, error)`` where ``error`` is the codec failure
            that stopped the batch, or ``None``.
        """
        parse = self._parse
        write = self._sink.write
        completed: int = 0
        try:
            for completed in range(count):
                write(parse(payload))
        except CodecError as exc:
            return completed, exc
        return count, None

    def _fail(
        self, successes: int, started_ns: int, error: CodecError,
    ) -> ParseFailure:
        elapsed_ns: int = self._clock() - started_ns
        failure = ParseFailure(
            iteration=successes + 1,
            success_count=successes,
            fail_count=1,
            elapsed_ns=elapsed_ns,
            error_type=error.error_type,
            message=error.message,
        )
        logger.error(
            "Parse failed during %s at iteration %d after %.2f ms",
            self._phase.value,
            failure.iteration,
            failure.elapsed_ms,
            exc_info=error,
        )
        self._report(
            f"FAILED at iteration {failure.iteration:,}: "
            f"{failure.error_type}: {failure.message}"
        )
        return failure

    def _enter(self, phase: BenchmarkPhase) -> None:
        logger.debug("Benchmark phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase
