"""Protobuf message schema for the parse benchmark.

Messages are declared as betterproto dataclasses, the same form
``protoc --python_betterproto_out`` generates. The harness treats them
as opaque: it only calls ``bytes(msg)`` and ``Message().parse(data)``.

Equivalent ``.proto``::

    message SyntheticNode {
      string name = 1;
      int64 value = 2;
      repeated SyntheticNode children = 3;
    }

    message BenchmarkRequest {
      SyntheticNode root = 1;
    }

    message EmbeddedMessage {
      repeated int64 ids = 1;
      repeated string labels = 2;
      repeated EmbeddedMessage nested = 3;
    }

    message VulnerableRequest {
      string request_id = 1;
      int32 version = 2;
      repeated EmbeddedMessage embedded = 3;
    }

``VulnerableRequest`` is the type the adversarial fixture is parsed
as: every occurrence of field 3 on the wire materializes a new
``EmbeddedMessage`` object, so a few bytes of input fan out into many
Python allocations.
"""

from dataclasses import dataclass
from typing import List

import betterproto


@dataclass(eq=False, repr=False)
class SyntheticNode(betterproto.Message):
    """One node of the synthetic benchmark tree."""

    name: str = betterproto.string_field(1)
    value: int = betterproto.int64_field(2)
    children: List["SyntheticNode"] = betterproto.message_field(3)


@dataclass(eq=False, repr=False)
class BenchmarkRequest(betterproto.Message):
    """Top-level message serialized once and parsed in every round."""

    root: "SyntheticNode" = betterproto.message_field(1)


@dataclass(eq=False, repr=False)
class EmbeddedMessage(betterproto.Message):
    ids: List[int] = betterproto.int64_field(1)
    labels: List[str] = betterproto.string_field(2)
    nested: List["EmbeddedMessage"] = betterproto.message_field(3)


@dataclass(eq=False, repr=False)
class VulnerableRequest(betterproto.Message):
    """Request type with repeated embedded messages (field 3)."""

    request_id: str = betterproto.string_field(1)
    version: int = betterproto.int32_field(2)
    embedded: List["EmbeddedMessage"] = betterproto.message_field(3)
