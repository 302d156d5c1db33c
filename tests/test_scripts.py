"""Tests for the command-line entry points.

Tests cover:
    - Benchmark CLI over a small tree (table and JSON output)
    - Benchmark CLI rejects invalid configuration with exit code 1
    - Amplification probe over the bundled fixture
    - Amplification probe usage and exit code 1 on bad input
    - Both CLIs print usage on stdout for non-numeric arguments
    - Memory probe selection (RSS default, tracemalloc opt-in)
    - Missing fixture and codec failure handling
"""

from unittest.mock import patch

import pytest

from core.exceptions import ConfigurationError
from core.memory import RssProbe
from infra.codec import CodecError
from scripts import amplification_probe, benchmark_parse

_SMALL_RUN: list[str] = [
    "--depth", "1", "--warmup", "2", "--batch-size", "2", "--rounds", "2",
]


@pytest.fixture(autouse=True)
def _no_settle():
    """Skip the settle pause in every CLI run."""
    with patch("core.memory.time.sleep"):
        yield


# -----------------------------------------------------------------------
# benchmark_parse
# -----------------------------------------------------------------------


class TestBenchmarkParseCLI:
    """Tests for scripts.benchmark_parse.main()."""

    def test_small_run(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Prints header, round lines and the statistics table."""
        exit_code: int = benchmark_parse.main(_SMALL_RUN)
        out: str = capsys.readouterr().out

        assert exit_code == 0
        assert "=== Protobuf Parsing Benchmark ===" in out
        assert "Tree depth: 2 levels" in out
        assert "Branching factor: 8 children per node" in out
        assert "Round  1/2:" in out
        assert "=== Benchmark Results ===" in out
        assert "P99:" in out

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """--json prints the report as JSON."""
        exit_code: int = benchmark_parse.main([*_SMALL_RUN, "--json"])
        out: str = capsys.readouterr().out

        assert exit_code == 0
        assert '"has_data": true' in out
        assert '"num_samples": 2' in out

    def test_invalid_rounds(self, capsys: pytest.CaptureFixture[str]) -> None:
        """rounds=0 is rejected before any work."""
        exit_code: int = benchmark_parse.main(["--rounds", "0"])
        out: str = capsys.readouterr().out

        assert exit_code == 1
        assert "Invalid configuration" in out
        assert "Benchmark Results" not in out

    def test_invalid_depth(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Depth above the maximum is rejected."""
        assert benchmark_parse.main(["--depth", "12"]) == 1
        assert "tree_depth" in capsys.readouterr().out

    def test_non_integer_argument(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Non-numeric flag value prints usage on stdout and exits 1."""
        with pytest.raises(SystemExit) as exc_info:
            benchmark_parse.main(["--rounds", "abc"])

        captured = capsys.readouterr()
        assert exc_info.value.code == 1
        assert "invalid int value: 'abc'" in captured.out
        assert "usage:" in captured.out
        assert "--rounds" in captured.out
        assert captured.err == ""


# -----------------------------------------------------------------------
# amplification_probe
# -----------------------------------------------------------------------


class TestAmplificationProbeCLI:
    """Tests for scripts.amplification_probe.main()."""

    def test_default_single_parse(self, capsys: pytest.CaptureFixture[str]) -> None:
        """No argument: one parse over the bundled fixture."""
        exit_code: int = amplification_probe.main([])
        out: str = capsys.readouterr().out

        assert exit_code == 0
        assert "Loaded fixture repeated-embedded-amplification.bin: 9,233 bytes" in out
        assert "Parse iterations: 1" in out
        assert "WARNING" not in out
        assert "Success count: 1/1" in out
        assert "Impact Analysis:" in out

    def test_repeated_parse_warning(self, capsys: pytest.CaptureFixture[str]) -> None:
        """More than one iteration prints the DoS warning."""
        exit_code: int = amplification_probe.main(["3"])
        out: str = capsys.readouterr().out

        assert exit_code == 0
        assert "WARNING: Running 3 iterations" in out
        assert "Success count: 3/3" in out

    def test_non_integer_argument(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Non-integer input prints usage and exits 1."""
        with pytest.raises(SystemExit) as exc_info:
            amplification_probe.main(["abc"])

        assert exc_info.value.code == 1
        assert "Usage: amplification_probe [--tracemalloc] [iterations]" in (
            capsys.readouterr().out
        )

    @pytest.mark.parametrize("argument", ["0", "-5"])
    def test_non_positive_argument(
        self, argument: str, capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Zero or negative iterations print usage and return 1."""
        exit_code: int = amplification_probe.main([argument])
        out: str = capsys.readouterr().out

        assert exit_code == 1
        assert "Configuration error" in out
        assert "Usage:" in out

    def test_missing_fixture(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Missing resource returns 1 before parsing."""
        with patch(
            "scripts.amplification_probe.load_fixture",
            side_effect=ConfigurationError("Resource not found: x.bin"),
        ):
            exit_code: int = amplification_probe.main([])

        out: str = capsys.readouterr().out
        assert exit_code == 1
        assert "Resource not found: x.bin" in out
        assert "Parsing with" not in out

    def test_codec_failure_reported(self, capsys: pytest.CaptureFixture[str]) -> None:
        """A rejected payload still completes with exit code 0."""

        def reject(payload: bytes) -> object:
            raise CodecError("invalid wire type", error_type="ValueError")

        with patch("scripts.amplification_probe.parser_for", return_value=reject):
            exit_code: int = amplification_probe.main(["2"])

        out: str = capsys.readouterr().out
        assert exit_code == 0
        assert "Success count: 0/2" in out
        assert "FAILED at iteration 1: ValueError: invalid wire type" in out

    def test_rss_probe_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Without --tracemalloc the analyzer samples process RSS."""
        with patch("scripts.amplification_probe.AmplificationAnalyzer") as mock_cls:
            mock_cls.return_value.analyze.side_effect = RuntimeError("stop")
            with pytest.raises(RuntimeError, match="stop"):
                amplification_probe.main([])

        assert isinstance(mock_cls.call_args.kwargs["probe"], RssProbe)
        assert "Memory probe: process RSS" in capsys.readouterr().out

    def test_tracemalloc_opt_in(self, capsys: pytest.CaptureFixture[str]) -> None:
        """--tracemalloc selects the tracing probe and says so."""
        exit_code: int = amplification_probe.main(["--tracemalloc", "2"])
        out: str = capsys.readouterr().out

        assert exit_code == 0
        assert "Memory probe: tracemalloc" in out
        assert "Success count: 2/2" in out
