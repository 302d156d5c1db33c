"""Measurement engine for the protobuf parse benchmark.

This package holds the synthetic tree generator, the statistics
engine, the benchmark driver and the amplification analyzer. All
result and configuration models are Pydantic-based and frozen.
"""

from core.amplification import (
    AmplificationAnalyzer,
    AmplificationSample,
    ImpactReport,
    compute_impact,
)
from core.config import AmplificationConfig, BenchmarkConfig
from core.driver import BenchmarkDriver, BenchmarkPhase, ResultSink
from core.exceptions import ConfigurationError
from core.statistics import (
    BenchmarkReport,
    LatencySample,
    ParseFailure,
    summarize,
)
from core.synthetic import generate
from infra.codec import CodecError

__all__: list[str] = [
    "AmplificationAnalyzer",
    "AmplificationConfig",
    "AmplificationSample",
    "BenchmarkConfig",
    "BenchmarkDriver",
    "BenchmarkPhase",
    "BenchmarkReport",
    "CodecError",
    "ConfigurationError",
    "ImpactReport",
    "LatencySample",
    "ParseFailure",
    "ResultSink",
    "compute_impact",
    "generate",
    "summarize",
]
