"""Unit tests for core.driver.

Tests cover:
    - Phase progression INIT -> WARMUP -> STABILIZE -> MEASURE -> REPORT
    - Every parse result reaches the sink
    - One latency sample per round, timed with the injected clock
    - Payload reuse across iterations
    - Codec failure stops the loop and is reported with partial results
    - Progress lines and round stride
    - End-to-end run over a small synthetic tree
"""

from unittest.mock import MagicMock, patch

import pytest

from core.config import BenchmarkConfig
from core.driver import BenchmarkDriver, BenchmarkPhase, ResultSink
from core.statistics import BenchmarkReport
from core.synthetic import build_request
from infra.codec import CodecError, parser_for
from infra.messages import BenchmarkRequest


class _StepClock:
    """Clock that advances a fixed step on every read."""

    def __init__(self, step_ns: int) -> None:
        self.now: int = 0
        self.step_ns: int = step_ns

    def __call__(self) -> int:
        self.now += self.step_ns
        return self.now


class _FailingParser:
    """Parser that raises CodecError on the given call number."""

    def __init__(self, fail_on: int) -> None:
        self.calls: int = 0
        self.fail_on: int = fail_on

    def __call__(self, payload: bytes) -> object:
        self.calls += 1
        if self.calls == self.fail_on:
            raise CodecError("truncated field", error_type="IndexError")
        return object()


def _config(**overrides: object) -> BenchmarkConfig:
    values: dict[str, object] = {
        "warmup_iterations": 3,
        "batch_size": 4,
        "rounds": 2,
        "tree_depth": 1,
        "settle_seconds": 0.0,
    }
    values.update(overrides)
    return BenchmarkConfig(**values)


# -----------------------------------------------------------------------
# Protocol
# -----------------------------------------------------------------------


class TestDriverProtocol:
    """Tests for the warmup / measure protocol."""

    def test_starts_in_init(self) -> None:
        """A fresh driver is in INIT."""
        driver: BenchmarkDriver = BenchmarkDriver(_config(), parse=MagicMock())
        assert driver.phase == BenchmarkPhase.INIT

    def test_phases_visited_in_order(self) -> None:
        """Each phase is entered once, strictly forward."""
        driver: BenchmarkDriver = BenchmarkDriver(_config(), parse=MagicMock())
        visited: list[BenchmarkPhase] = []
        original_enter = driver._enter

        def record(phase: BenchmarkPhase) -> None:
            visited.append(phase)
            original_enter(phase)

        with patch.object(driver, "_enter", side_effect=record):
            driver.run(build_request(depth=0))

        assert visited == [
            BenchmarkPhase.INIT,
            BenchmarkPhase.WARMUP,
            BenchmarkPhase.STABILIZE,
            BenchmarkPhase.MEASURE,
            BenchmarkPhase.REPORT,
        ]
        assert driver.phase == BenchmarkPhase.REPORT

    def test_every_result_reaches_sink(self) -> None:
        """Sink writes = warmup + rounds * batch_size."""
        sink: ResultSink = ResultSink()
        parse: MagicMock = MagicMock(return_value="parsed")
        driver: BenchmarkDriver = BenchmarkDriver(_config(), parse=parse, sink=sink)

        driver.run_payload(b"payload")

        assert parse.call_count == 3 + 2 * 4
        assert sink.writes == 3 + 2 * 4
        assert driver.sink is sink

    def test_same_payload_reused(self) -> None:
        """Every parse receives the identical payload object."""
        payload: bytes = b"\x0a\x04root"
        seen: list[bytes] = []

        def parse(data: bytes) -> object:
            seen.append(data)
            return data

        BenchmarkDriver(_config(), parse=parse).run_payload(payload)

        assert len(seen) == 11
        assert all(data is payload for data in seen)

    def test_zero_warmup(self) -> None:
        """warmup_iterations=0 goes straight to measurement."""
        parse: MagicMock = MagicMock()
        report: BenchmarkReport = BenchmarkDriver(
            _config(warmup_iterations=0), parse=parse,
        ).run_payload(b"x")
        assert parse.call_count == 8
        assert report.num_samples == 2

    def test_stabilize_between_warmup_and_measure(self) -> None:
        """Reclamation pass runs once with the configured pause."""
        with patch("core.driver.stabilize") as mock_stabilize:
            BenchmarkDriver(
                _config(settle_seconds=0.25), parse=MagicMock(),
            ).run_payload(b"x")
        mock_stabilize.assert_called_once_with(0.25)


# -----------------------------------------------------------------------
# Timing
# -----------------------------------------------------------------------


class TestDriverTiming:
    """Tests for sample collection with an injected clock."""

    def test_one_sample_per_round(self) -> None:
        """Round duration comes from the two clock reads around a batch."""
        clock: _StepClock = _StepClock(step_ns=400_000)
        report: BenchmarkReport = BenchmarkDriver(
            _config(rounds=3), parse=MagicMock(), clock=clock,
        ).run_payload(b"x")

        assert report.has_data is True
        assert report.num_samples == 3
        # 400,000 ns / 4 ops = 100 us/op
        assert report.min_us == 100.0
        assert report.max_us == 100.0
        assert report.stddev_us == 0.0

    def test_report_echoes_config_and_size(self) -> None:
        """Configuration and payload size are carried in the report."""
        config: BenchmarkConfig = _config()
        report: BenchmarkReport = BenchmarkDriver(
            config, parse=MagicMock(),
        ).run_payload(b"1234567")

        assert report.config == config
        assert report.batch_size == 4
        assert report.message_size_bytes == 7
        assert report.failure is None


# -----------------------------------------------------------------------
# Failure handling
# -----------------------------------------------------------------------


class TestDriverFailure:
    """Tests for codec failure semantics."""

    def test_failure_during_measure_keeps_completed_rounds(self) -> None:
        """Failure on parse #8: warmup 3, round 1 done, round 2 aborted."""
        parse: _FailingParser = _FailingParser(fail_on=8)
        report: BenchmarkReport = BenchmarkDriver(
            _config(), parse=parse,
        ).run_payload(b"x")

        assert parse.calls == 8
        assert report.num_samples == 1
        assert report.has_data is True
        assert report.failure is not None
        assert report.failure.iteration == 8
        assert report.failure.success_count == 7
        assert report.failure.fail_count == 1
        assert report.failure.error_type == "IndexError"
        assert report.failure.message == "truncated field"

    def test_failure_during_warmup_skips_measure(self) -> None:
        """No samples when warmup fails; driver still reaches REPORT."""
        parse: _FailingParser = _FailingParser(fail_on=2)
        driver: BenchmarkDriver = BenchmarkDriver(_config(), parse=parse)

        with patch("core.driver.stabilize") as mock_stabilize:
            report: BenchmarkReport = driver.run_payload(b"x")

        assert parse.calls == 2
        assert report.has_data is False
        assert report.failure is not None
        assert report.failure.success_count == 1
        assert driver.phase == BenchmarkPhase.REPORT
        mock_stabilize.assert_not_called()

    def test_warmup_failure_elapsed_from_warmup_start(self) -> None:
        """A warmup failure is timed from the start of warmup."""
        clock: _StepClock = _StepClock(step_ns=1_000)
        report: BenchmarkReport = BenchmarkDriver(
            _config(), parse=_FailingParser(fail_on=1), clock=clock,
        ).run_payload(b"x")

        assert report.failure is not None
        assert report.failure.elapsed_ns == 1_000

    def test_measure_failure_excludes_warmup(self) -> None:
        """A measurement failure is timed from the start of measurement."""
        clock: _StepClock = _StepClock(step_ns=1_000)
        # 3 warmup parses, then the first measured parse fails.
        report: BenchmarkReport = BenchmarkDriver(
            _config(), parse=_FailingParser(fail_on=4), clock=clock,
        ).run_payload(b"x")

        # Reads: warmup start, measure start, round t0 and t1, failure.
        assert clock.now == 5_000
        assert report.failure is not None
        assert report.failure.elapsed_ns == 3_000

    def test_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """The failure is logged at ERROR with its stack trace."""
        with caplog.at_level("ERROR", logger="core.driver"):
            BenchmarkDriver(
                _config(), parse=_FailingParser(fail_on=5),
            ).run_payload(b"x")

        records = [r for r in caplog.records if r.name == "core.driver"]
        assert len(records) == 1
        assert records[0].exc_info is not None

    def test_failure_reported_to_reporter(self) -> None:
        """Reporter receives the FAILED line."""
        lines: list[str] = []
        BenchmarkDriver(
            _config(), parse=_FailingParser(fail_on=4), reporter=lines.append,
        ).run_payload(b"x")
        assert any(line.startswith("FAILED at iteration 4") for line in lines)

    def test_other_exceptions_propagate(self) -> None:
        """Only CodecError is handled; anything else is a bug."""
        parse: MagicMock = MagicMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError, match="boom"):
            BenchmarkDriver(_config(), parse=parse).run_payload(b"x")


# -----------------------------------------------------------------------
# Progress
# -----------------------------------------------------------------------


class TestDriverProgress:
    """Tests for reporter output."""

    def test_round_lines(self) -> None:
        """One line per round when the run is small."""
        lines: list[str] = []
        BenchmarkDriver(
            _config(), parse=MagicMock(), reporter=lines.append,
        ).run_payload(b"x")

        assert lines[0] == "Warming up (3 iterations)..."
        assert "Warmup complete." in lines
        assert "Running benchmark (2 rounds of 4 iterations each)..." in lines
        rounds: list[str] = [line for line in lines if line.startswith("Round")]
        assert len(rounds) == 2
        assert rounds[0].startswith("Round  1/2:")
        assert rounds[1].endswith("us/op")

    def test_round_lines_at_deciles(self) -> None:
        """20 rounds of 10 ops: every other round plus the last."""
        lines: list[str] = []
        BenchmarkDriver(
            _config(rounds=20, batch_size=10), parse=MagicMock(),
            reporter=lines.append,
        ).run_payload(b"x")

        rounds: list[str] = [line for line in lines if line.startswith("Round")]
        assert len(rounds) == 11
        assert rounds[-1].startswith("Round 20/20:")


# -----------------------------------------------------------------------
# End to end
# -----------------------------------------------------------------------


class TestDriverEndToEnd:
    """Real codec over a small synthetic tree."""

    def test_run_small_tree(self) -> None:
        """Depth-1 tree parses cleanly and fills the report."""
        sink: ResultSink = ResultSink()
        report: BenchmarkReport = BenchmarkDriver(
            _config(), parse=parser_for(BenchmarkRequest), sink=sink,
        ).run(build_request(depth=1))

        assert report.has_data is True
        assert report.failure is None
        assert report.num_samples == 2
        assert report.message_size_bytes > 0
        assert report.ops_per_sec > 0
        assert sink.writes == 11
