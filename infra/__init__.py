"""Infrastructure layer for the protobuf parse benchmark.

This package wraps the external betterproto codec, declares the
message schema, and loads bundled binary fixtures.
"""

from infra.codec import parse, parser_for, serialize
from infra.fixtures import load_fixture
from infra.messages import (
    BenchmarkRequest,
    EmbeddedMessage,
    SyntheticNode,
    VulnerableRequest,
)

__all__: list[str] = [
    "BenchmarkRequest",
    "EmbeddedMessage",
    "SyntheticNode",
    "VulnerableRequest",
    "load_fixture",
    "parse",
    "parser_for",
    "serialize",
]
